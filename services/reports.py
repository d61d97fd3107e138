"""
Reporting / Query Layer - read-only projections over enrollments and payments
"""
from collections import OrderedDict
from typing import Optional
import datetime
import math

from sqlalchemy.orm import Session

from errors import ValidationError
from models.enrollment import StudentEnrollment
from models.payments import Payment
from services.ledger import money


def _paginate(items, page: int, limit: Optional[int]):
    if limit is not None and limit < 1:
        raise ValidationError("limit must be at least 1")
    page = max(page or 1, 1)
    total = len(items)
    if limit is None:
        return items, {"page": 1, "limit": None, "total": total, "pages": 1}
    start = (page - 1) * limit
    return items[start:start + limit], {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def _bump(groups: dict, key, amount: float) -> None:
    bucket = groups.setdefault(key, {"count": 0, "amount": 0.0})
    bucket["count"] += 1
    bucket["amount"] = money(bucket["amount"] + amount)


# =====================
# ENROLLMENT LISTING
# =====================

def list_enrollments(db: Session, academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                     student_id: Optional[int] = None, search: str = "", include_inactive: bool = False,
                     page: int = 1, limit: Optional[int] = None):
    query = db.query(StudentEnrollment)
    if not include_inactive:
        query = query.filter(StudentEnrollment.is_active == True)
    if academic_year_id:
        query = query.filter(StudentEnrollment.academic_year_id == academic_year_id)
    if class_id:
        query = query.filter(StudentEnrollment.class_id == class_id)
    if student_id:
        query = query.filter(StudentEnrollment.student_id == student_id)

    enrollments = query.order_by(StudentEnrollment.id.desc()).all()

    # Snapshot fields live in JSON, so the text search runs here
    if search:
        needle = search.strip().lower()
        enrollments = [
            e for e in enrollments
            if needle in (e.student or {}).get("name", "").lower()
            or needle in (e.student or {}).get("admission_number", "").lower()
            or needle in (e.class_info or {}).get("class_name", "").lower()
            or needle == (e.section or "").lower()
        ]

    items, pagination = _paginate(enrollments, page, limit)
    return {"enrollments": items, "pagination": pagination}


# =====================
# OUTSTANDING FEES
# =====================

def outstanding_row(enrollment: StudentEnrollment) -> dict:
    totals = enrollment.totals
    return {
        "enrollment_id": enrollment.id,
        "student_id": enrollment.student_id,
        "student": enrollment.student,
        "class_name": (enrollment.class_info or {}).get("class_name"),
        "section": enrollment.section,
        "academic_year": (enrollment.academic_year or {}).get("year"),
        "fee_breakdown": [
            {
                "fee_id": line["id"],
                "template_name": line["template_name"],
                "total": line["amount"],
                "paid": line["amount_paid"],
                "outstanding": line["amount_due"],
            }
            for line in enrollment.fees or []
        ],
        "scholarship": totals["scholarships"]["applied"],
        "total_fee": totals["net_amount"]["total"],
        "total_paid": totals["net_amount"]["paid"],
        "outstanding": totals["net_amount"]["due"],
        "status": enrollment.fee_status["status"],
        "last_payment_date": enrollment.fee_status.get("last_payment_date"),
    }


def get_outstanding(db: Session, academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                    section: Optional[str] = None, status: Optional[str] = None,
                    min_outstanding: float = 0.0, page: int = 1, limit: Optional[int] = 20):
    """Active enrollments still owing money, largest balance first"""
    query = db.query(StudentEnrollment).filter(StudentEnrollment.is_active == True)
    if academic_year_id:
        query = query.filter(StudentEnrollment.academic_year_id == academic_year_id)
    if class_id:
        query = query.filter(StudentEnrollment.class_id == class_id)
    if section:
        query = query.filter(StudentEnrollment.section == section)

    rows = []
    for enrollment in query.all():
        due = enrollment.totals["net_amount"]["due"]
        if due <= 0 or due < (min_outstanding or 0):
            continue
        if status and enrollment.fee_status["status"] != status:
            continue
        rows.append(outstanding_row(enrollment))

    rows.sort(key=lambda r: (-r["outstanding"], (r["student"] or {}).get("name", "")))

    total_outstanding = money(sum(r["outstanding"] for r in rows))
    summary = {
        "total_students": len(rows),
        "total_outstanding": total_outstanding,
        "average_outstanding": money(total_outstanding / len(rows)) if rows else 0.0,
    }

    items, pagination = _paginate(rows, page, limit)
    return {"enrollments": items, "summary": summary, "pagination": pagination}


# =====================
# COLLECTION REPORT
# =====================

GROUP_BY = ("day", "week", "month")


def _period_key(day: datetime.date, group_by: str) -> str:
    """Day as is, week by its Monday, month as YYYY-MM"""
    if group_by == "week":
        return (day - datetime.timedelta(days=day.weekday())).isoformat()
    if group_by == "month":
        return day.strftime("%Y-%m")
    return day.isoformat()


def get_fee_collection_report(db: Session, date_from: datetime.date, date_to: datetime.date,
                              academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                              payment_method: Optional[str] = None, created_by: Optional[str] = None,
                              group_by: str = "day"):
    if group_by not in GROUP_BY:
        raise ValidationError(f"group_by must be one of {', '.join(GROUP_BY)}")
    if not date_from or not date_to:
        raise ValidationError("Payment date range is required")
    if date_from > date_to:
        raise ValidationError("Start date must be on or before end date")

    query = db.query(Payment).filter(
        Payment.payment_date >= date_from,
        Payment.payment_date <= date_to
    )
    if academic_year_id:
        query = query.filter(Payment.academic_year_id == academic_year_id)
    if class_id:
        query = query.join(
            StudentEnrollment, StudentEnrollment.id == Payment.student_enrollment_id
        ).filter(StudentEnrollment.class_id == class_id)
    if payment_method:
        query = query.filter(Payment.payment_method == payment_method)
    if created_by:
        query = query.filter(Payment.created_by == created_by)

    payments = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()
    active = [p for p in payments if p.status != "CANCELLED"]
    cancelled = [p for p in payments if p.status == "CANCELLED"]

    by_method, by_class, by_collector, by_fee = {}, {}, {}, {}
    by_day, by_period = OrderedDict(), OrderedDict()
    for p in sorted(active, key=lambda p: (p.payment_date, p.id)):
        _bump(by_method, p.payment_method, p.total_amount)
        _bump(by_day, p.payment_date.isoformat(), p.total_amount)
        _bump(by_period, _period_key(p.payment_date, group_by), p.total_amount)
        _bump(by_class, (p.class_info or {}).get("class_name", "-"), p.total_amount)
        _bump(by_collector, p.created_by, p.total_amount)
        for item in p.payment_items or []:
            _bump(by_fee, item["fee_template_name"], item["amount"])

    total_amount = money(sum(p.total_amount for p in active))
    return {
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "summary": {
            "total_transactions": len(active),
            "total_amount": total_amount,
            "average_transaction": money(total_amount / len(active)) if active else 0.0,
            "cancelled_transactions": len(cancelled),
            "cancelled_amount": money(sum(p.total_amount for p in cancelled)),
        },
        "by_payment_method": by_method,
        "by_day": by_day,
        "group_by": group_by,
        "by_period": by_period,
        "by_class": by_class,
        "by_collector": by_collector,
        "by_fee": by_fee,
        "payments": active,
    }


# =====================
# DASHBOARD
# =====================

def get_dashboard_stats(db: Session, academic_year_id: Optional[int] = None):
    query = db.query(StudentEnrollment).filter(StudentEnrollment.is_active == True)
    if academic_year_id:
        query = query.filter(StudentEnrollment.academic_year_id == academic_year_id)
    enrollments = query.all()

    status_counts = {"PAID": 0, "PARTIAL": 0, "OVERDUE": 0}
    billed = scholarships = collected = outstanding = 0.0
    for e in enrollments:
        status_counts[e.fee_status["status"]] += 1
        billed += e.totals["fees"]["total"]
        scholarships += e.totals["scholarships"]["applied"]
        collected += e.totals["net_amount"]["paid"]
        outstanding += e.totals["net_amount"]["due"]

    inactive = db.query(StudentEnrollment).filter(StudentEnrollment.is_active == False)
    if academic_year_id:
        inactive = inactive.filter(StudentEnrollment.academic_year_id == academic_year_id)

    recent = db.query(Payment).filter(Payment.status != "CANCELLED")
    if academic_year_id:
        recent = recent.filter(Payment.academic_year_id == academic_year_id)

    return {
        "active_enrollments": len(enrollments),
        "inactive_enrollments": inactive.count(),
        "status_counts": status_counts,
        "total_billed": money(billed),
        "total_scholarships": money(scholarships),
        "total_collected": money(collected),
        "total_outstanding": money(outstanding),
        "recent_payments": recent.order_by(Payment.id.desc()).limit(5).all(),
    }

