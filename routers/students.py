from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import or_
from database import get_db
from models.students import Student
from routers.auth import get_current_user
from schemas.masters import StudentCreate, StudentOut
from typing import List

router = APIRouter(
    prefix="/api/v1/students",
    tags=["Students"],
    dependencies=[Depends(get_current_user)],
)


@router.get("", response_model=List[StudentOut])
def list_students(search: str = "", status_filter: str = "all", db: Session = Depends(get_db)):
    query = db.query(Student)

    # Status filter
    if status_filter == "active":
        query = query.filter(Student.status == True)
    elif status_filter == "inactive":
        query = query.filter(Student.status == False)

    # Search filter
    if search:
        search_fmt = f"%{search}%"
        query = query.filter(
            or_(
                Student.student_name.ilike(search_fmt),
                Student.admission_no.ilike(search_fmt),
                Student.father_name.ilike(search_fmt)
            )
        )

    return query.order_by(Student.student_name).all()


@router.post("", response_model=StudentOut, status_code=201)
def create_student(item: StudentCreate, db: Session = Depends(get_db)):
    if db.query(Student).filter(Student.admission_no == item.admission_no).first():
        raise HTTPException(status_code=409, detail="Admission number already exists")

    student = Student(
        admission_no=item.admission_no.strip(),
        student_name=item.student_name.strip(),
        father_name=item.father_name,
        mobile_number=item.mobile_number,
        status=True,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@router.get("/{student_id}", response_model=StudentOut)
def get_student(student_id: int, db: Session = Depends(get_db)):
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.put("/{student_id}/toggle-status", response_model=StudentOut)
def toggle_student_status(student_id: int, db: Session = Depends(get_db)):
    """Toggle student status between Active and Inactive; enrollments keep their own snapshot"""
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    student.status = not student.status
    db.commit()
    db.refresh(student)
    return student
