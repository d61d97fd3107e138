"""
Template Catalog - Fee Templates and Scholarship Templates
"""
from typing import Optional
import logging

from sqlalchemy.orm import Session

from database import atomic
from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from models.fee_models import (
    FEE_CATEGORIES, SCHOLARSHIP_TYPES, FeeStructure, FeeTemplate, ScholarshipTemplate
)

logger = logging.getLogger(__name__)


def _is_referenced(db: Session, lines_attr: str, template_id: int) -> bool:
    for lines in db.query(getattr(FeeStructure, lines_attr)).all():
        if any(line.get("template_id") == template_id for line in (lines[0] or [])):
            return True
    return False


def _clean_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Template name is required")
    return name


# =====================
# FEE TEMPLATES
# =====================

def list_fee_templates(db: Session, include_inactive: bool = False):
    query = db.query(FeeTemplate)
    if not include_inactive:
        query = query.filter(FeeTemplate.is_active == True)
    return query.order_by(FeeTemplate.order, FeeTemplate.name).all()


def get_fee_template(db: Session, template_id: int) -> FeeTemplate:
    template = db.query(FeeTemplate).filter(FeeTemplate.id == template_id).first()
    if not template:
        raise NotFoundError(f"Fee template {template_id} not found")
    return template


def create_fee_template(db: Session, name: str, category: str = "REGULAR",
                        order: int = 0, is_active: bool = True) -> FeeTemplate:
    name = _clean_name(name)
    if category not in FEE_CATEGORIES:
        raise ValidationError(f"Invalid fee category '{category}'")

    with atomic(db):
        if db.query(FeeTemplate).filter(FeeTemplate.name == name).first():
            raise ConflictError(f"Fee template '{name}' already exists")
        template = FeeTemplate(name=name, category=category, order=order, is_active=is_active)
        db.add(template)

    db.refresh(template)
    logger.info("Created fee template %s (%s)", template.name, template.category)
    return template


def update_fee_template(db: Session, template_id: int, patch: dict) -> FeeTemplate:
    """Rename / reorder / (de)activate; category is frozen once a structure uses it"""
    with atomic(db):
        template = get_fee_template(db, template_id)

        if "category" in patch and patch["category"] != template.category:
            if patch["category"] not in FEE_CATEGORIES:
                raise ValidationError(f"Invalid fee category '{patch['category']}'")
            if _is_referenced(db, "fee_items", template.id):
                raise InvalidStateError(
                    f"Fee template '{template.name}' is used by a fee structure; its category cannot change"
                )
            template.category = patch["category"]

        if "name" in patch:
            name = _clean_name(patch["name"])
            clash = db.query(FeeTemplate).filter(FeeTemplate.name == name, FeeTemplate.id != template.id).first()
            if clash:
                raise ConflictError(f"Fee template '{name}' already exists")
            template.name = name
        if "order" in patch:
            template.order = patch["order"]
        if "is_active" in patch:
            template.is_active = bool(patch["is_active"])

    db.refresh(template)
    return template


def delete_fee_template(db: Session, template_id: int) -> None:
    with atomic(db):
        template = get_fee_template(db, template_id)
        if _is_referenced(db, "fee_items", template.id):
            raise ConflictError(
                f"Fee template '{template.name}' is used by a fee structure; deactivate it instead"
            )
        db.delete(template)
    logger.info("Deleted fee template %s", template_id)


# =====================
# SCHOLARSHIP TEMPLATES
# =====================

def list_scholarship_templates(db: Session, include_inactive: bool = False):
    query = db.query(ScholarshipTemplate)
    if not include_inactive:
        query = query.filter(ScholarshipTemplate.is_active == True)
    return query.order_by(ScholarshipTemplate.order, ScholarshipTemplate.name).all()


def get_scholarship_template(db: Session, template_id: int) -> ScholarshipTemplate:
    template = db.query(ScholarshipTemplate).filter(ScholarshipTemplate.id == template_id).first()
    if not template:
        raise NotFoundError(f"Scholarship template {template_id} not found")
    return template


def create_scholarship_template(db: Session, name: str, type: str = "GENERAL",
                                order: int = 0, is_active: bool = True) -> ScholarshipTemplate:
    name = _clean_name(name)
    if type not in SCHOLARSHIP_TYPES:
        raise ValidationError(f"Invalid scholarship type '{type}'")

    with atomic(db):
        if db.query(ScholarshipTemplate).filter(ScholarshipTemplate.name == name).first():
            raise ConflictError(f"Scholarship template '{name}' already exists")
        template = ScholarshipTemplate(name=name, type=type, order=order, is_active=is_active)
        db.add(template)

    db.refresh(template)
    logger.info("Created scholarship template %s (%s)", template.name, template.type)
    return template


def update_scholarship_template(db: Session, template_id: int, patch: dict) -> ScholarshipTemplate:
    with atomic(db):
        template = get_scholarship_template(db, template_id)

        if "type" in patch and patch["type"] != template.type:
            if patch["type"] not in SCHOLARSHIP_TYPES:
                raise ValidationError(f"Invalid scholarship type '{patch['type']}'")
            if _is_referenced(db, "scholarship_items", template.id):
                raise InvalidStateError(
                    f"Scholarship template '{template.name}' is used by a fee structure; its type cannot change"
                )
            template.type = patch["type"]

        if "name" in patch:
            name = _clean_name(patch["name"])
            clash = db.query(ScholarshipTemplate).filter(
                ScholarshipTemplate.name == name, ScholarshipTemplate.id != template.id
            ).first()
            if clash:
                raise ConflictError(f"Scholarship template '{name}' already exists")
            template.name = name
        if "order" in patch:
            template.order = patch["order"]
        if "is_active" in patch:
            template.is_active = bool(patch["is_active"])

    db.refresh(template)
    return template


def delete_scholarship_template(db: Session, template_id: int) -> None:
    with atomic(db):
        template = get_scholarship_template(db, template_id)
        if _is_referenced(db, "scholarship_items", template.id):
            raise ConflictError(
                f"Scholarship template '{template.name}' is used by a fee structure; deactivate it instead"
            )
        db.delete(template)
    logger.info("Deleted scholarship template %s", template_id)
