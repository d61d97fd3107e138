"""
Ledger arithmetic shared by structures, enrollments and payments.

Everything here is pure: functions take line dicts and return new dicts, so
callers can assign the results back to JSON columns without mutating what
SQLAlchemy already holds.
"""
from typing import Dict, List, Optional
import math
import uuid

EPSILON = 0.01

STATUS_PAID = "PAID"
STATUS_PARTIAL = "PARTIAL"
STATUS_OVERDUE = "OVERDUE"


def money(value) -> float:
    """Round to paise/cents; every stored amount goes through here"""
    return round(float(value or 0), 2)


def is_finite_amount(value) -> bool:
    """False for None, NaN and +/-Infinity"""
    try:
        return value is not None and math.isfinite(value)
    except TypeError:
        return False


def new_line_id() -> str:
    return uuid.uuid4().hex


def line_due(amount, amount_paid) -> float:
    return money(max(0.0, money(amount) - money(amount_paid)))


# =====================
# FEE STRUCTURE TOTALS
# =====================

def structure_fee_totals(fee_items: List[dict]) -> Dict[str, float]:
    compulsory = money(sum(i["amount"] for i in fee_items if i.get("is_compulsory")))
    optional = money(sum(i["amount"] for i in fee_items if not i.get("is_compulsory")))
    return {"compulsory": compulsory, "optional": optional, "total": money(compulsory + optional)}


def structure_scholarship_totals(scholarship_items: List[dict]) -> Dict[str, float]:
    auto_applied = money(sum(i["amount"] for i in scholarship_items if i.get("is_auto_applied")))
    manual = money(sum(i["amount"] for i in scholarship_items if not i.get("is_auto_applied")))
    return {"auto_applied": auto_applied, "manual": manual, "total": money(auto_applied + manual)}


# =====================
# ENROLLMENT TOTALS & STATUS
# =====================

def enrollment_totals(fees: List[dict], scholarships: List[dict]) -> dict:
    fees_total = money(sum(f["amount"] for f in fees))
    fees_paid = money(sum(f["amount_paid"] for f in fees))
    fees_due = money(sum(f["amount_due"] for f in fees))
    applied = money(sum(s["amount"] for s in scholarships if s.get("is_active", True)))

    net_total = money(fees_total - applied)
    net_paid = fees_paid
    net_due = money(max(0.0, net_total - net_paid))

    return {
        "fees": {"total": fees_total, "paid": fees_paid, "due": fees_due},
        "scholarships": {"applied": applied},
        "net_amount": {"total": net_total, "paid": net_paid, "due": net_due},
    }


def status_for(totals: dict) -> str:
    net = totals["net_amount"]
    if net["due"] <= 0:
        return STATUS_PAID
    if net["paid"] == 0:
        return STATUS_OVERDUE
    return STATUS_PARTIAL


def fee_status_for(totals: dict, last_payment_date: Optional[str] = None) -> dict:
    # OVERDUE means "nothing paid yet"; there is no due-date schedule behind it
    status = status_for(totals)
    return {
        "status": status,
        "last_payment_date": last_payment_date,
        "next_due_date": None,
        "overdue_amount": totals["net_amount"]["due"] if status == STATUS_OVERDUE else 0.0,
    }


# =====================
# LINE MUTATIONS
# =====================

def apply_to_line(line: dict, amount: float) -> dict:
    paid = money(line["amount_paid"] + amount)
    return {**line, "amount_paid": paid, "amount_due": line_due(line["amount"], paid)}


def reverse_on_line(line: dict, amount: float) -> dict:
    paid = money(min(line["amount"], max(0.0, line["amount_paid"] - amount)))
    return {**line, "amount_paid": paid, "amount_due": line_due(line["amount"], paid)}
