"""
Enrollment Materializer

Copies a Fee Structure's lines into a StudentEnrollment and keeps the
enrollment's totals / fee_status documents in step with its lines.

Class changes re-price the student against the new class's structure while
carrying over what was already paid, matched line by line on template id.
"""
from typing import Dict, List, Optional
import datetime
import logging

from sqlalchemy.orm import Session

from database import atomic
from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from models.enrollment import StudentEnrollment
from models.fee_models import FeeStructure
from models.masters import AcademicYear, ClassMaster
from models.students import Student
from services.fee_structures import find_active_structure
from services.ledger import (
    EPSILON, enrollment_totals, fee_status_for, is_finite_amount, line_due, money, new_line_id
)

logger = logging.getLogger(__name__)


# =====================
# LEDGER HELPERS
# =====================

def apply_ledger(enrollment: StudentEnrollment, fees: List[dict], scholarships: List[dict],
                 last_payment_date: Optional[str]) -> None:
    """Write lines and their derived totals/status back in one go"""
    totals = enrollment_totals(fees, scholarships)
    enrollment.fees = fees
    enrollment.scholarships = scholarships
    enrollment.totals = totals
    enrollment.fee_status = fee_status_for(totals, last_payment_date)


def _override_for(overrides: Optional[Dict[str, float]], item: dict) -> Optional[float]:
    """Overrides are keyed by structure line id or by template id"""
    if not overrides:
        return None
    for key in (item["id"], str(item["template_id"])):
        if overrides.get(key) is not None:
            value = overrides[key]
            if not is_finite_amount(value) or value < 0:
                raise ValidationError(
                    f"Custom amount for '{item['template_name']}' must be a finite number, zero or more"
                )
            return money(value)
    return None


def _line_amount(item: dict, overrides: Optional[Dict[str, float]]) -> float:
    custom = _override_for(overrides, item)
    if custom is not None and item.get("is_editable_during_enrollment"):
        return custom
    return money(item["amount"])


def _require_active_structure(db: Session, academic_year_id: int, class_id: int) -> FeeStructure:
    structure = find_active_structure(db, academic_year_id, class_id)
    if not structure:
        raise InvalidStateError("No active fee structure found for this academic year and class")
    return structure


def _require_section(section: Optional[str]) -> str:
    section = (section or "").strip()
    if not section:
        raise ValidationError("Section is required")
    return section


def build_fee_lines(structure: FeeStructure, overrides: Optional[Dict[str, float]],
                    previous: Optional[List[dict]] = None) -> List[dict]:
    """
    Materialize fee lines from the structure.

    With `previous` lines, each new line takes over the amount_paid (and line
    id) of the old line for the same template, so payment history survives a
    re-price.
    """
    old_by_template = {line["template_id"]: line for line in (previous or [])}

    lines = []
    for item in structure.fee_items or []:
        amount = _line_amount(item, overrides)
        old = old_by_template.get(item["template_id"])
        paid = old["amount_paid"] if old else 0.0

        if paid > amount + EPSILON:
            raise InvalidStateError(
                f"'{item['template_name']}' already has {paid:.2f} paid, more than the new amount {amount:.2f}"
            )

        lines.append({
            "id": old["id"] if old else new_line_id(),
            "fee_item_id": item["id"],
            "template_id": item["template_id"],
            "template_name": item["template_name"],
            "template_category": item["template_category"],
            "amount": amount,
            "original_amount": money(item["amount"]),
            "amount_paid": paid,
            "amount_due": line_due(amount, paid),
            "is_compulsory": bool(item.get("is_compulsory", True)),
        })

    kept = {line["template_id"] for line in lines}
    for old in previous or []:
        if old["template_id"] not in kept and old["amount_paid"] > 0:
            raise InvalidStateError(
                f"'{old['template_name']}' has payments recorded but is not part of the new fee structure"
            )

    return lines


def build_scholarship_lines(structure: FeeStructure, selected_ids: Optional[List[str]],
                            overrides: Optional[Dict[str, float]], applied_by: str,
                            previous: Optional[List[dict]] = None) -> List[dict]:
    """
    Auto-applied lines are always included, manual ones only when selected.
    Previous lines are matched on scholarship item id, then template id.
    """
    items = structure.scholarship_items or []
    selected = set(selected_ids or [])
    unknown = selected - {item["id"] for item in items}
    if unknown:
        raise ValidationError(f"Unknown scholarship selection: {', '.join(sorted(unknown))}")

    by_item = {line["scholarship_item_id"]: line for line in (previous or [])}
    by_template = {line["template_id"]: line for line in (previous or [])}
    today = datetime.date.today().isoformat()

    lines = []
    for item in items:
        if not (item.get("is_auto_applied") or item["id"] in selected):
            continue

        amount = _line_amount(item, overrides)
        if amount <= 0:
            continue

        old = by_item.get(item["id"]) or by_template.get(item["template_id"])
        lines.append({
            "id": old["id"] if old else new_line_id(),
            "scholarship_item_id": item["id"],
            "template_id": item["template_id"],
            "template_name": item["template_name"],
            "template_type": item["template_type"],
            "amount": amount,
            "original_amount": money(item["amount"]),
            "applied_date": old["applied_date"] if old else today,
            "applied_by": old["applied_by"] if old else applied_by,
            "is_active": True,
            "is_auto_applied": bool(item.get("is_auto_applied")),
        })

    return lines


def _carry_manual_selection(structure: FeeStructure, previous: List[dict]) -> List[str]:
    """Structure line ids matching the enrollment's current manual scholarships"""
    manual = [line for line in previous if not line.get("is_auto_applied")]
    item_ids = {line["scholarship_item_id"] for line in manual}
    template_ids = {line["template_id"] for line in manual}
    return [
        item["id"] for item in (structure.scholarship_items or [])
        if item["id"] in item_ids or item["template_id"] in template_ids
    ]


# =====================
# QUERIES
# =====================

def get_enrollment(db: Session, enrollment_id: int) -> StudentEnrollment:
    enrollment = db.query(StudentEnrollment).filter(StudentEnrollment.id == enrollment_id).first()
    if not enrollment:
        raise NotFoundError(f"Student enrollment {enrollment_id} not found")
    return enrollment


def lock_enrollment(db: Session, enrollment_id: int) -> StudentEnrollment:
    """Fresh read with a row lock, for payment collection / cancellation"""
    enrollment = db.query(StudentEnrollment).filter(
        StudentEnrollment.id == enrollment_id
    ).populate_existing().with_for_update().first()
    if not enrollment:
        raise NotFoundError(f"Student enrollment {enrollment_id} not found")
    return enrollment


# =====================
# MUTATIONS
# =====================

def enroll(db: Session, student_id: int, academic_year_id: int, class_id: int, section: str,
           custom_fee_overrides: Optional[Dict[str, float]] = None,
           selected_scholarship_ids: Optional[List[str]] = None,
           custom_scholarship_overrides: Optional[Dict[str, float]] = None,
           applied_by: str = "Admin") -> StudentEnrollment:
    section = _require_section(section)

    with atomic(db):
        existing = db.query(StudentEnrollment).filter(
            StudentEnrollment.student_id == student_id,
            StudentEnrollment.academic_year_id == academic_year_id
        ).first()
        if existing:
            raise ConflictError("Student is already enrolled in this academic year")

        structure = _require_active_structure(db, academic_year_id, class_id)

        student = db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise NotFoundError(f"Student {student_id} not found")
        if not student.status:
            raise InvalidStateError(f"Student '{student.student_name}' is inactive")
        academic_year = db.query(AcademicYear).filter(AcademicYear.id == academic_year_id).first()
        class_val = db.query(ClassMaster).filter(ClassMaster.id == class_id).first()
        if not academic_year or not class_val:
            raise NotFoundError("Academic year or class not found")

        enrollment = StudentEnrollment(
            student_id=student_id,
            academic_year_id=academic_year_id,
            class_id=class_id,
            section=section,
            enrollment_date=datetime.date.today(),
            is_active=True,
            student=student.snapshot(),
            academic_year=academic_year.snapshot(),
            class_info=class_val.snapshot(),
        )
        apply_ledger(
            enrollment,
            build_fee_lines(structure, custom_fee_overrides),
            build_scholarship_lines(
                structure, selected_scholarship_ids, custom_scholarship_overrides, applied_by
            ),
            last_payment_date=None,
        )
        db.add(enrollment)

    db.refresh(enrollment)
    logger.info(
        "Enrolled student %s in %s / %s (net %.2f)",
        student_id, enrollment.academic_year["year"], enrollment.class_info["class_name"],
        enrollment.totals["net_amount"]["total"]
    )
    return enrollment


def update_enrollment(db: Session, enrollment_id: int, class_id: Optional[int] = None,
                      section: Optional[str] = None,
                      custom_fee_overrides: Optional[Dict[str, float]] = None,
                      custom_scholarship_overrides: Optional[Dict[str, float]] = None,
                      selected_scholarship_ids: Optional[List[str]] = None,
                      applied_by: str = "Admin") -> StudentEnrollment:
    with atomic(db):
        enrollment = lock_enrollment(db, enrollment_id)
        if not enrollment.is_active:
            raise InvalidStateError("Cannot update an inactive enrollment")

        class_id = class_id or enrollment.class_id
        structure = _require_active_structure(db, enrollment.academic_year_id, class_id)

        if class_id != enrollment.class_id:
            class_val = db.query(ClassMaster).filter(ClassMaster.id == class_id).first()
            if not class_val:
                raise NotFoundError(f"Class {class_id} not found")
            enrollment.class_id = class_id
            enrollment.class_info = class_val.snapshot()
        if section is not None:
            enrollment.section = _require_section(section)

        previous_scholarships = enrollment.scholarships or []
        if selected_scholarship_ids is None:
            selected_scholarship_ids = _carry_manual_selection(structure, previous_scholarships)

        apply_ledger(
            enrollment,
            build_fee_lines(structure, custom_fee_overrides, previous=enrollment.fees or []),
            build_scholarship_lines(
                structure, selected_scholarship_ids, custom_scholarship_overrides, applied_by,
                previous=previous_scholarships
            ),
            last_payment_date=(enrollment.fee_status or {}).get("last_payment_date"),
        )

    db.refresh(enrollment)
    logger.info("Updated enrollment %s (net due %.2f)", enrollment.id, enrollment.totals["net_amount"]["due"])
    return enrollment


def _set_active(db: Session, enrollment_id: int, active: bool) -> StudentEnrollment:
    with atomic(db):
        enrollment = lock_enrollment(db, enrollment_id)
        if bool(enrollment.is_active) == active:
            raise InvalidStateError(
                "Enrollment is already active" if active else "Enrollment is already inactive"
            )
        enrollment.is_active = active
        enrollment.student = {**(enrollment.student or {}), "status": "ACTIVE" if active else "INACTIVE"}

    db.refresh(enrollment)
    logger.info("Enrollment %s marked %s", enrollment.id, "active" if active else "inactive")
    return enrollment


def deactivate_enrollment(db: Session, enrollment_id: int) -> StudentEnrollment:
    return _set_active(db, enrollment_id, False)


def reactivate_enrollment(db: Session, enrollment_id: int) -> StudentEnrollment:
    return _set_active(db, enrollment_id, True)
