from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from routers.auth import get_current_user
from schemas.payments import PaymentOut
from services import reports
from datetime import date
from typing import Optional

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["Reports"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/outstanding")
def outstanding_fees(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                     section: Optional[str] = None, status: Optional[str] = None,
                     min_outstanding: float = 0.0, page: int = 1, limit: int = 20,
                     db: Session = Depends(get_db)):
    return reports.get_outstanding(
        db, academic_year_id, class_id, section, status, min_outstanding, page, limit
    )


@router.get("/fee-collection")
def fee_collection(date_from: date, date_to: date, academic_year_id: Optional[int] = None,
                   class_id: Optional[int] = None, payment_method: Optional[str] = None,
                   created_by: Optional[str] = None, group_by: str = "day",
                   db: Session = Depends(get_db)):
    report = reports.get_fee_collection_report(
        db, date_from, date_to, academic_year_id, class_id, payment_method, created_by, group_by
    )
    report["payments"] = [PaymentOut.model_validate(p) for p in report["payments"]]
    return report


@router.get("/dashboard")
def dashboard_stats(academic_year_id: Optional[int] = None, db: Session = Depends(get_db)):
    stats = reports.get_dashboard_stats(db, academic_year_id)
    stats["recent_payments"] = [PaymentOut.model_validate(p) for p in stats["recent_payments"]]
    return stats
