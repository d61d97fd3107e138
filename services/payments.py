"""
Payment Application Engine

collect_payment() validates a payment against a locked, fresh copy of the
enrollment, then writes the receipt counter, the Payment row and the updated
enrollment ledger in a single transaction. cancel_payment() is the exact
reverse and never deletes the Payment row.
"""
from typing import List, Optional
import datetime
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import config
from database import atomic, utcnow
from errors import (
    AlreadyCancelledError, AuthorizationError, InvalidStateError, NotFoundError, ValidationError
)
from models.payments import PAYMENT_METHODS, Payment, ReceiptCounter
from services.enrollments import apply_ledger, get_enrollment, lock_enrollment
from services.ledger import EPSILON, apply_to_line, is_finite_amount, money, reverse_on_line

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "ACTIVE"
STATUS_CANCELLED = "CANCELLED"


# =====================
# RECEIPT NUMBERS
# =====================

def next_receipt_sequence(db: Session, academic_year_id: int) -> int:
    """
    Atomically bump the academic year's counter and return the new value.

    The increment is a single UPDATE so concurrent collections never read
    the same number; the first receipt of a year creates the counter row.
    """
    bumped = db.query(ReceiptCounter).filter(
        ReceiptCounter.academic_year_id == academic_year_id
    ).update({ReceiptCounter.last_number: ReceiptCounter.last_number + 1}, synchronize_session=False)

    if not bumped:
        db.add(ReceiptCounter(academic_year_id=academic_year_id, last_number=1))
        db.flush()
        return 1

    return db.query(ReceiptCounter.last_number).filter(
        ReceiptCounter.academic_year_id == academic_year_id
    ).scalar()


def format_receipt_number(academic_year: str, sequence: int) -> str:
    """REC-2025-26-0001"""
    return f"{config.RECEIPT_PREFIX}-{academic_year}-{str(sequence).zfill(4)}"


# =====================
# VALIDATION
# =====================

def _validate_items(fees: List[dict], payment_items: List[dict], total_amount: float) -> None:
    if not payment_items:
        raise ValidationError("At least one fee item is required")

    lines = {line["id"]: line for line in fees}
    seen = set()
    for item in payment_items:
        fee_id = item.get("fee_id")
        line = lines.get(fee_id)
        if line is None:
            raise ValidationError(f"Fee item invalid: {fee_id}")
        if fee_id in seen:
            raise ValidationError(f"Fee item '{line['template_name']}' is listed more than once")
        seen.add(fee_id)

        amount = item.get("amount")
        if not is_finite_amount(amount) or amount <= 0:
            raise ValidationError(f"Payment for '{line['template_name']}' must be greater than zero")
        if money(amount) > line["amount_due"]:
            raise ValidationError(
                f"Payment for '{line['template_name']}' cannot exceed outstanding balance of {line['amount_due']:.2f}"
            )

    if not is_finite_amount(total_amount):
        raise ValidationError("Total amount must be a finite number")
    calculated = money(sum(item["amount"] for item in payment_items))
    if abs(money(total_amount) - calculated) > EPSILON:
        raise ValidationError(
            f"Total mismatch: total amount {money(total_amount):.2f} does not match sum of items {calculated:.2f}"
        )


def _latest_date(*dates: Optional[str]) -> Optional[str]:
    present = [d for d in dates if d]
    return max(present) if present else None


# =====================
# COLLECT
# =====================

def collect_payment(db: Session, student_enrollment_id: int, payment_items: List[dict],
                    total_amount: float, payment_method: str = "CASH", remarks: Optional[str] = None,
                    created_by: str = "Admin",
                    payment_date: Optional[datetime.date] = None) -> Payment:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method '{payment_method}'")
    payment_date = payment_date or datetime.date.today()

    with atomic(db):
        enrollment = lock_enrollment(db, student_enrollment_id)
        if not enrollment.is_active:
            raise InvalidStateError("Cannot collect fees for an inactive enrollment")

        fees = enrollment.fees or []
        _validate_items(fees, payment_items, total_amount)

        sequence = next_receipt_sequence(db, enrollment.academic_year_id)
        receipt_no = format_receipt_number(enrollment.academic_year["year"], sequence)

        by_id = {line["id"]: line for line in fees}
        updated = {}
        breakdown = []
        for item in payment_items:
            line = by_id[item["fee_id"]]
            amount = money(item["amount"])
            breakdown.append({
                "fee_id": line["id"],
                "fee_template_id": line["template_id"],
                "fee_template_name": line["template_name"],
                "amount": amount,
                "fee_balance": money(line["amount_due"] - amount),
            })
            updated[line["id"]] = apply_to_line(line, amount)

        payment = Payment(
            receipt_no=receipt_no,
            receipt_sequence=sequence,
            student_enrollment_id=enrollment.id,
            academic_year_id=enrollment.academic_year_id,
            total_amount=money(total_amount),
            payment_method=payment_method,
            payment_date=payment_date,
            remarks=remarks,
            status=STATUS_ACTIVE,
            student=dict(enrollment.student or {}),
            class_info={**(enrollment.class_info or {}), "section": enrollment.section},
            academic_year=dict(enrollment.academic_year or {}),
            payment_items=breakdown,
            created_by=created_by,
        )
        db.add(payment)

        apply_ledger(
            enrollment,
            [updated.get(line["id"], line) for line in fees],
            enrollment.scholarships or [],
            last_payment_date=_latest_date(
                (enrollment.fee_status or {}).get("last_payment_date"), payment_date.isoformat()
            ),
        )

    db.refresh(payment)
    logger.info(
        "Collected %.2f (%s) against enrollment %s, receipt %s",
        payment.total_amount, payment.payment_method, enrollment.id, payment.receipt_no
    )
    return payment


# =====================
# CANCEL
# =====================

def cancel_payment(db: Session, payment_id: int, reason: str, cancelled_by: str, role: str) -> Payment:
    """Administrator-only reversal; a payment can be cancelled once"""
    if role != "admin":
        raise AuthorizationError("Only an administrator can cancel payments")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to cancel a payment")

    with atomic(db):
        payment = db.query(Payment).filter(Payment.id == payment_id).with_for_update().first()
        if not payment:
            raise NotFoundError(f"Payment {payment_id} not found")
        if payment.status == STATUS_CANCELLED:
            raise AlreadyCancelledError(f"Payment {payment.receipt_no} is already cancelled")

        enrollment = lock_enrollment(db, payment.student_enrollment_id)
        fees = list(enrollment.fees or [])

        for item in payment.payment_items or []:
            index = next((i for i, line in enumerate(fees) if line["id"] == item["fee_id"]), None)
            if index is None:
                index = next(
                    (i for i, line in enumerate(fees) if line["template_id"] == item["fee_template_id"]), None
                )
            if index is None:
                raise InvalidStateError(
                    f"Fee line '{item['fee_template_name']}' no longer exists on the enrollment"
                )
            fees[index] = reverse_on_line(fees[index], item["amount"])

        payment.status = STATUS_CANCELLED
        payment.remarks = f"{payment.remarks} | Cancelled: {reason}" if payment.remarks else f"Cancelled: {reason}"
        payment.cancelled_by = cancelled_by
        payment.cancelled_at = utcnow()

        last_date = db.query(func.max(Payment.payment_date)).filter(
            Payment.student_enrollment_id == enrollment.id,
            Payment.status == STATUS_ACTIVE,
            Payment.id != payment.id
        ).scalar()

        apply_ledger(
            enrollment,
            fees,
            enrollment.scholarships or [],
            last_payment_date=last_date.isoformat() if last_date else None,
        )

    db.refresh(payment)
    logger.info("Cancelled payment %s by %s: %s", payment.receipt_no, cancelled_by, reason)
    return payment


# =====================
# QUERIES
# =====================

def get_payment(db: Session, payment_id: int) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found")
    return payment


def get_payments_for_enrollment(db: Session, enrollment_id: int, include_cancelled: bool = True):
    get_enrollment(db, enrollment_id)
    query = db.query(Payment).filter(Payment.student_enrollment_id == enrollment_id)
    if not include_cancelled:
        query = query.filter(Payment.status == STATUS_ACTIVE)
    return query.order_by(Payment.receipt_sequence, Payment.id).all()
