from pydantic import BaseModel
from datetime import date
from typing import Dict, List, Optional

from schemas.fees import Amount


class EnrollmentCreate(BaseModel):
    student_id: int
    academic_year_id: int
    class_id: int
    section: str
    custom_fees: Dict[str, Amount] = {}  # keyed by fee line id or template id
    custom_scholarships: Dict[str, Amount] = {}
    selected_scholarships: List[str] = []  # scholarship line ids from the fee structure

class EnrollmentUpdate(BaseModel):
    class_id: Optional[int] = None
    section: Optional[str] = None
    custom_fees: Dict[str, Amount] = {}
    custom_scholarships: Dict[str, Amount] = {}
    selected_scholarships: Optional[List[str]] = None  # None keeps the current manual selection


class StudentFeeOut(BaseModel):
    id: str
    fee_item_id: str
    template_id: int
    template_name: str
    template_category: str
    amount: float
    original_amount: float
    amount_paid: float
    amount_due: float
    is_compulsory: bool

class StudentScholarshipOut(BaseModel):
    id: str
    scholarship_item_id: str
    template_id: int
    template_name: str
    template_type: str
    amount: float
    original_amount: float
    applied_date: str
    applied_by: str
    is_active: bool
    is_auto_applied: bool

class FeeStatusOut(BaseModel):
    status: str
    last_payment_date: Optional[str] = None
    next_due_date: Optional[str] = None
    overdue_amount: float

class EnrollmentOut(BaseModel):
    id: int
    student_id: int
    academic_year_id: int
    class_id: int
    section: str
    enrollment_date: Optional[date] = None
    is_active: bool
    student: Dict
    academic_year: Dict
    class_info: Dict
    fees: List[StudentFeeOut]
    scholarships: List[StudentScholarshipOut]
    totals: Dict[str, Dict[str, float]]
    fee_status: FeeStatusOut
    class Config:
        from_attributes = True

class EnrollmentListOut(BaseModel):
    enrollments: List[EnrollmentOut]
    pagination: Dict
