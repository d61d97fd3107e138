from pydantic import BaseModel
from datetime import date
from typing import Optional


class ClassCreate(BaseModel):
    class_name: str
    order: int = 0

class ClassOut(BaseModel):
    id: int
    class_name: str
    order: int
    status: bool
    class Config:
        from_attributes = True


class AcademicYearCreate(BaseModel):
    year: str  # "2025-26"
    start_date: date
    end_date: date
    is_active: bool = False

class AcademicYearOut(BaseModel):
    id: int
    year: str
    start_date: date
    end_date: date
    is_active: bool
    class Config:
        from_attributes = True


class StudentCreate(BaseModel):
    admission_no: str
    student_name: str
    father_name: Optional[str] = None
    mobile_number: Optional[str] = None

class StudentOut(BaseModel):
    id: int
    admission_no: str
    student_name: str
    father_name: Optional[str] = None
    mobile_number: Optional[str] = None
    status: bool
    class Config:
        from_attributes = True
