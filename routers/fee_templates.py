from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from routers.auth import get_current_user
from schemas.fees import (
    FeeTemplateCreate, FeeTemplateUpdate, FeeTemplateOut,
    ScholarshipTemplateCreate, ScholarshipTemplateUpdate, ScholarshipTemplateOut
)
from services import templates as catalog
from typing import List

router = APIRouter(
    prefix="/api/v1/templates",
    tags=["Fee & Scholarship Templates"],
    dependencies=[Depends(get_current_user)],
)

# =====================
# FEE TEMPLATE APIs
# =====================

@router.get("/fees", response_model=List[FeeTemplateOut])
def get_fee_templates(include_inactive: bool = False, db: Session = Depends(get_db)):
    return catalog.list_fee_templates(db, include_inactive)

@router.post("/fees", response_model=FeeTemplateOut, status_code=201)
def create_fee_template(data: FeeTemplateCreate, db: Session = Depends(get_db)):
    return catalog.create_fee_template(db, data.name, data.category, data.order, data.is_active)

@router.put("/fees/{template_id}", response_model=FeeTemplateOut)
def update_fee_template(template_id: int, data: FeeTemplateUpdate, db: Session = Depends(get_db)):
    return catalog.update_fee_template(db, template_id, data.model_dump(exclude_unset=True))

@router.delete("/fees/{template_id}")
def delete_fee_template(template_id: int, db: Session = Depends(get_db)):
    """Hard delete; refused once a fee structure uses the template"""
    catalog.delete_fee_template(db, template_id)
    return {"message": "Deleted"}


# =====================
# SCHOLARSHIP TEMPLATE APIs
# =====================

@router.get("/scholarships", response_model=List[ScholarshipTemplateOut])
def get_scholarship_templates(include_inactive: bool = False, db: Session = Depends(get_db)):
    return catalog.list_scholarship_templates(db, include_inactive)

@router.post("/scholarships", response_model=ScholarshipTemplateOut, status_code=201)
def create_scholarship_template(data: ScholarshipTemplateCreate, db: Session = Depends(get_db)):
    return catalog.create_scholarship_template(db, data.name, data.type, data.order, data.is_active)

@router.put("/scholarships/{template_id}", response_model=ScholarshipTemplateOut)
def update_scholarship_template(template_id: int, data: ScholarshipTemplateUpdate, db: Session = Depends(get_db)):
    return catalog.update_scholarship_template(db, template_id, data.model_dump(exclude_unset=True))

@router.delete("/scholarships/{template_id}")
def delete_scholarship_template(template_id: int, db: Session = Depends(get_db)):
    catalog.delete_scholarship_template(db, template_id)
    return {"message": "Deleted"}
