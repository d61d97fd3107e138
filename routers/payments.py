"""
Fee Collection Router - payment collection, cancellation and receipts
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from routers.auth import get_current_user
from schemas.payments import PaymentRequest, CancelRequest, PaymentOut
from services import payments as engine
from services.receipts import get_receipt

router = APIRouter(prefix="/api/v1/payments", tags=["Fee Collection"])


@router.post("/collect", response_model=PaymentOut, status_code=201)
def collect_fee(pay: PaymentRequest, db: Session = Depends(get_db),
                user: dict = Depends(get_current_user)):
    """Apply a payment across one or more fee lines and issue a receipt"""
    return engine.collect_payment(
        db,
        student_enrollment_id=pay.student_enrollment_id,
        payment_items=[item.model_dump() for item in pay.payment_items],
        total_amount=pay.total_amount,
        payment_method=pay.payment_method,
        remarks=pay.remarks,
        created_by=user["username"],
        payment_date=pay.payment_date,
    )


@router.get("/receipt/{receipt_no}")
def get_receipt_details(receipt_no: str, db: Session = Depends(get_db),
                        user: dict = Depends(get_current_user)):
    """Get receipt details for printing"""
    return get_receipt(db, receipt_no)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: int, db: Session = Depends(get_db),
                user: dict = Depends(get_current_user)):
    return engine.get_payment(db, payment_id)


@router.post("/{payment_id}/cancel", response_model=PaymentOut)
def cancel_payment(payment_id: int, data: CancelRequest, db: Session = Depends(get_db),
                   user: dict = Depends(get_current_user)):
    """Administrator only; reverses the payment and keeps the record for audit"""
    return engine.cancel_payment(
        db, payment_id, data.reason, cancelled_by=user["username"], role=user["role"]
    )
