from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from database import get_db
from models.masters import ClassMaster, AcademicYear
from routers.auth import get_current_user
from schemas.masters import ClassCreate, ClassOut, AcademicYearCreate, AcademicYearOut
from typing import List
import re

router = APIRouter(
    prefix="/api/v1/masters",
    tags=["Master Records"],
    dependencies=[Depends(get_current_user)],
)

# =======================
# 1. CLASS APIs
# =======================
@router.get("/classes", response_model=List[ClassOut])
def list_classes(db: Session = Depends(get_db)):
    return db.query(ClassMaster).order_by(ClassMaster.order, ClassMaster.id).all()

@router.post("/classes", response_model=ClassOut, status_code=201)
def create_class(item: ClassCreate, db: Session = Depends(get_db)):
    existing = db.query(ClassMaster).filter(ClassMaster.class_name == item.class_name).first()
    if existing:
        raise HTTPException(status_code=409, detail="Class already exists")

    new_class = ClassMaster(class_name=item.class_name, order=item.order)
    db.add(new_class)
    db.commit()
    db.refresh(new_class)
    return new_class

# =======================
# 2. ACADEMIC YEAR APIs
# =======================
@router.get("/academic-years", response_model=List[AcademicYearOut])
def list_academic_years(db: Session = Depends(get_db)):
    return db.query(AcademicYear).order_by(AcademicYear.start_date.desc()).all()

@router.post("/academic-years", response_model=AcademicYearOut, status_code=201)
def create_academic_year(item: AcademicYearCreate, db: Session = Depends(get_db)):
    if not re.match(r"^\d{4}-\d{2}$", item.year):
        raise HTTPException(status_code=400, detail="Academic year must look like 2025-26")
    if item.start_date >= item.end_date:
        raise HTTPException(status_code=400, detail="Start date must be before end date")
    if db.query(AcademicYear).filter(AcademicYear.year == item.year).first():
        raise HTTPException(status_code=409, detail="Academic year already exists")

    # Only one academic year is current at a time
    if item.is_active:
        db.query(AcademicYear).update({AcademicYear.is_active: False})

    year = AcademicYear(
        year=item.year, start_date=item.start_date, end_date=item.end_date, is_active=item.is_active
    )
    db.add(year)
    db.commit()
    db.refresh(year)
    return year

@router.put("/academic-years/{year_id}/activate", response_model=AcademicYearOut)
def activate_academic_year(year_id: int, db: Session = Depends(get_db)):
    year = db.query(AcademicYear).filter(AcademicYear.id == year_id).first()
    if not year:
        raise HTTPException(status_code=404, detail="Academic year not found")

    db.query(AcademicYear).filter(AcademicYear.id != year_id).update({AcademicYear.is_active: False})
    year.is_active = True
    db.commit()
    db.refresh(year)
    return year
