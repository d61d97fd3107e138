"""
Fee Structure Builder - priced fee/scholarship lines for one (academic year, class)

Template name/category/type are copied into each line when it is created, so
later template edits never change an existing structure. Enrollments keep
their own copy as well: editing a structure never touches them.
"""
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from database import atomic
from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from models.fee_models import FeeStructure, FeeTemplate, ScholarshipTemplate
from models.masters import AcademicYear, ClassMaster
from services.ledger import (
    is_finite_amount, money, new_line_id, structure_fee_totals, structure_scholarship_totals
)

logger = logging.getLogger(__name__)


# =====================
# HELPERS
# =====================

def _year_and_class(db: Session, academic_year_id: int, class_id: int):
    academic_year = db.query(AcademicYear).filter(AcademicYear.id == academic_year_id).first()
    if not academic_year:
        raise NotFoundError(f"Academic year {academic_year_id} not found")
    class_val = db.query(ClassMaster).filter(ClassMaster.id == class_id).first()
    if not class_val:
        raise NotFoundError(f"Class {class_id} not found")
    return academic_year, class_val


def _resolve_template(db: Session, model, template_id: int, label: str):
    template = db.query(model).filter(model.id == template_id).first()
    if not template:
        raise NotFoundError(f"{label} template {template_id} not found")
    if not template.is_active:
        raise InvalidStateError(f"{label} template '{template.name}' is inactive")
    return template


def _amount(item: dict, label: str) -> float:
    amount = item.get("amount")
    if not is_finite_amount(amount) or amount < 0:
        raise ValidationError(f"{label} amount must be a finite number, zero or more")
    return money(amount)


def _check_unique_templates(items: List[dict], label: str) -> None:
    seen = set()
    for item in items:
        if item["template_id"] in seen:
            raise ValidationError(f"{label} template {item['template_id']} is listed more than once")
        seen.add(item["template_id"])


def _pick(item: dict, key: str, default):
    value = item.get(key)
    return default if value is None else value


def build_fee_items(db: Session, inputs: List[dict], existing: Optional[List[dict]] = None) -> List[dict]:
    """
    Turn caller input into structure fee lines.

    An input carrying the id of an existing line with the same template keeps
    that id and its name/category snapshot; anything else re-reads the template.
    """
    _check_unique_templates(inputs, "Fee")
    current: Dict[str, dict] = {line["id"]: line for line in (existing or [])}

    lines = []
    for item in inputs:
        previous = current.get(item.get("id"))
        if previous and previous["template_id"] == item["template_id"]:
            line_id = previous["id"]
            name, category, order = previous["template_name"], previous["template_category"], previous["order"]
        else:
            template = _resolve_template(db, FeeTemplate, item["template_id"], "Fee")
            line_id = new_line_id()
            name, category, order = template.name, template.category, template.order

        lines.append({
            "id": line_id,
            "template_id": item["template_id"],
            "template_name": name,
            "template_category": category,
            "amount": _amount(item, "Fee"),
            "is_compulsory": bool(_pick(item, "is_compulsory", True)),
            "is_editable_during_enrollment": bool(_pick(item, "is_editable_during_enrollment", False)),
            "order": _pick(item, "order", order),
        })

    return sorted(lines, key=lambda line: line["order"])


def build_scholarship_items(db: Session, inputs: List[dict], existing: Optional[List[dict]] = None) -> List[dict]:
    _check_unique_templates(inputs, "Scholarship")
    current: Dict[str, dict] = {line["id"]: line for line in (existing or [])}

    lines = []
    for item in inputs:
        previous = current.get(item.get("id"))
        if previous and previous["template_id"] == item["template_id"]:
            line_id = previous["id"]
            name, type_, order = previous["template_name"], previous["template_type"], previous["order"]
        else:
            template = _resolve_template(db, ScholarshipTemplate, item["template_id"], "Scholarship")
            line_id = new_line_id()
            name, type_, order = template.name, template.type, template.order

        lines.append({
            "id": line_id,
            "template_id": item["template_id"],
            "template_name": name,
            "template_type": type_,
            "amount": _amount(item, "Scholarship"),
            "is_auto_applied": bool(_pick(item, "is_auto_applied", False)),
            "is_editable_during_enrollment": bool(_pick(item, "is_editable_during_enrollment", False)),
            "order": _pick(item, "order", order),
        })

    return sorted(lines, key=lambda line: line["order"])


def _set_lines(structure: FeeStructure, fee_items: List[dict], scholarship_items: List[dict]) -> None:
    structure.fee_items = fee_items
    structure.scholarship_items = scholarship_items
    structure.total_fees = structure_fee_totals(fee_items)
    structure.total_scholarships = structure_scholarship_totals(scholarship_items)


def _ensure_pair_free(db: Session, academic_year_id: int, class_id: int) -> None:
    existing = db.query(FeeStructure).filter(
        FeeStructure.academic_year_id == academic_year_id,
        FeeStructure.class_id == class_id
    ).first()
    if existing:
        raise ConflictError("Fee structure already exists for this academic year and class")


# =====================
# QUERIES
# =====================

def get_fee_structure(db: Session, structure_id: int) -> FeeStructure:
    structure = db.query(FeeStructure).filter(FeeStructure.id == structure_id).first()
    if not structure:
        raise NotFoundError(f"Fee structure {structure_id} not found")
    return structure


def list_fee_structures(db: Session, academic_year_id: Optional[int] = None,
                        class_id: Optional[int] = None, include_inactive: bool = False):
    query = db.query(FeeStructure)
    if not include_inactive:
        query = query.filter(FeeStructure.is_active == True)
    if academic_year_id:
        query = query.filter(FeeStructure.academic_year_id == academic_year_id)
    if class_id:
        query = query.filter(FeeStructure.class_id == class_id)
    return query.order_by(FeeStructure.academic_year_id.desc(), FeeStructure.class_id).all()


def find_active_structure(db: Session, academic_year_id: int, class_id: int) -> Optional[FeeStructure]:
    return db.query(FeeStructure).filter(
        FeeStructure.academic_year_id == academic_year_id,
        FeeStructure.class_id == class_id,
        FeeStructure.is_active == True
    ).first()


# =====================
# MUTATIONS
# =====================

def create_fee_structure(db: Session, academic_year_id: int, class_id: int, name: Optional[str],
                         fee_items: List[dict], scholarship_items: Optional[List[dict]] = None,
                         description: Optional[str] = None, created_by: str = "Admin") -> FeeStructure:
    with atomic(db):
        _ensure_pair_free(db, academic_year_id, class_id)
        academic_year, class_val = _year_and_class(db, academic_year_id, class_id)

        structure = FeeStructure(
            academic_year_id=academic_year_id,
            class_id=class_id,
            name=(name or "").strip() or f"{class_val.class_name} - {academic_year.year}",
            description=description,
            is_active=True,
            academic_year=academic_year.snapshot(),
            class_info=class_val.snapshot(),
            created_by=created_by,
        )
        _set_lines(
            structure,
            build_fee_items(db, fee_items or []),
            build_scholarship_items(db, scholarship_items or []),
        )
        db.add(structure)

    db.refresh(structure)
    logger.info(
        "Created fee structure %s for %s / %s (fees %.2f)",
        structure.id, structure.academic_year.get("year"), structure.class_info.get("class_name"),
        structure.total_fees["total"]
    )
    return structure


def update_fee_structure(db: Session, structure_id: int, patch: dict) -> FeeStructure:
    with atomic(db):
        structure = get_fee_structure(db, structure_id)

        if patch.get("name") is not None:
            if not patch["name"].strip():
                raise ValidationError("Fee structure name cannot be empty")
            structure.name = patch["name"].strip()
        if "description" in patch:
            structure.description = patch["description"]
        if patch.get("is_active") is not None:
            structure.is_active = bool(patch["is_active"])

        fee_items = structure.fee_items or []
        scholarship_items = structure.scholarship_items or []
        if patch.get("fee_items") is not None:
            fee_items = build_fee_items(db, patch["fee_items"], existing=fee_items)
        if patch.get("scholarship_items") is not None:
            scholarship_items = build_scholarship_items(db, patch["scholarship_items"], existing=scholarship_items)
        _set_lines(structure, fee_items, scholarship_items)

    db.refresh(structure)
    logger.info("Updated fee structure %s", structure.id)
    return structure


def deactivate_fee_structure(db: Session, structure_id: int) -> FeeStructure:
    with atomic(db):
        structure = get_fee_structure(db, structure_id)
        structure.is_active = False

    db.refresh(structure)
    logger.info("Deactivated fee structure %s", structure.id)
    return structure


def copy_fee_structure(db: Session, structure_id: int, academic_year_id: int, class_id: int,
                       name: Optional[str] = None, created_by: str = "Admin") -> FeeStructure:
    """Clone a structure's lines into another (academic year, class) with fresh line ids"""
    with atomic(db):
        source = get_fee_structure(db, structure_id)
        _ensure_pair_free(db, academic_year_id, class_id)
        academic_year, class_val = _year_and_class(db, academic_year_id, class_id)

        structure = FeeStructure(
            academic_year_id=academic_year_id,
            class_id=class_id,
            name=(name or "").strip() or f"{class_val.class_name} - {academic_year.year}",
            description=source.description,
            is_active=True,
            academic_year=academic_year.snapshot(),
            class_info=class_val.snapshot(),
            created_by=created_by,
        )
        _set_lines(
            structure,
            [{**line, "id": new_line_id()} for line in source.fee_items or []],
            [{**line, "id": new_line_id()} for line in source.scholarship_items or []],
        )
        db.add(structure)

    db.refresh(structure)
    logger.info("Copied fee structure %s into %s", source.id, structure.id)
    return structure
