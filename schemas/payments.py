from pydantic import BaseModel
from datetime import date, datetime
from typing import Dict, List, Optional

from schemas.fees import Amount


class PaymentItemIn(BaseModel):
    fee_id: str
    amount: Amount

class PaymentRequest(BaseModel):
    student_enrollment_id: int
    payment_items: List[PaymentItemIn]
    total_amount: Amount
    payment_method: str = "CASH"
    payment_date: Optional[date] = None
    remarks: Optional[str] = None

class CancelRequest(BaseModel):
    reason: str


class PaymentItemOut(BaseModel):
    fee_id: str
    fee_template_id: int
    fee_template_name: str
    amount: float
    fee_balance: float

class PaymentOut(BaseModel):
    id: int
    receipt_no: str
    student_enrollment_id: int
    academic_year_id: int
    total_amount: float
    payment_method: str
    payment_date: date
    remarks: Optional[str] = None
    status: str
    student: Dict
    class_info: Dict
    academic_year: Dict
    payment_items: List[PaymentItemOut]
    created_by: str
    created_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    class Config:
        from_attributes = True
