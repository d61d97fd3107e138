from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from routers.auth import get_current_user
from schemas.enrollment import EnrollmentCreate, EnrollmentUpdate, EnrollmentOut, EnrollmentListOut
from schemas.payments import PaymentOut
from services import enrollments as materializer
from services import payments as engine
from services import reports
from typing import List, Optional

router = APIRouter(prefix="/api/v1/enrollments", tags=["Student Enrollments"])


@router.get("", response_model=EnrollmentListOut)
def list_enrollments(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                     student_id: Optional[int] = None, search: str = "", include_inactive: bool = False,
                     page: int = 1, limit: Optional[int] = None,
                     db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return reports.list_enrollments(
        db, academic_year_id, class_id, student_id, search, include_inactive, page, limit
    )


@router.post("", response_model=EnrollmentOut, status_code=201)
def create_enrollment(data: EnrollmentCreate, db: Session = Depends(get_db),
                      user: dict = Depends(get_current_user)):
    return materializer.enroll(
        db,
        student_id=data.student_id,
        academic_year_id=data.academic_year_id,
        class_id=data.class_id,
        section=data.section,
        custom_fee_overrides=data.custom_fees,
        selected_scholarship_ids=data.selected_scholarships,
        custom_scholarship_overrides=data.custom_scholarships,
        applied_by=user["username"],
    )


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
def get_enrollment(enrollment_id: int, db: Session = Depends(get_db),
                   user: dict = Depends(get_current_user)):
    return materializer.get_enrollment(db, enrollment_id)


@router.put("/{enrollment_id}", response_model=EnrollmentOut)
def update_enrollment(enrollment_id: int, data: EnrollmentUpdate, db: Session = Depends(get_db),
                      user: dict = Depends(get_current_user)):
    return materializer.update_enrollment(
        db,
        enrollment_id,
        class_id=data.class_id,
        section=data.section,
        custom_fee_overrides=data.custom_fees,
        custom_scholarship_overrides=data.custom_scholarships,
        selected_scholarship_ids=data.selected_scholarships,
        applied_by=user["username"],
    )


@router.post("/{enrollment_id}/deactivate", response_model=EnrollmentOut)
def deactivate_enrollment(enrollment_id: int, db: Session = Depends(get_db),
                          user: dict = Depends(get_current_user)):
    """Soft delete: the enrollment and its payment history stay on record"""
    return materializer.deactivate_enrollment(db, enrollment_id)


@router.post("/{enrollment_id}/reactivate", response_model=EnrollmentOut)
def reactivate_enrollment(enrollment_id: int, db: Session = Depends(get_db),
                          user: dict = Depends(get_current_user)):
    return materializer.reactivate_enrollment(db, enrollment_id)


@router.get("/{enrollment_id}/payments", response_model=List[PaymentOut])
def get_enrollment_payments(enrollment_id: int, include_cancelled: bool = True,
                            db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return engine.get_payments_for_enrollment(db, enrollment_id, include_cancelled)
