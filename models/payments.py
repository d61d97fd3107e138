"""
Payment Models - append-only receipts and the per-year receipt counter
"""
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, JSON
from database import Base, utcnow
import datetime


PAYMENT_METHODS = ("CASH", "ONLINE", "CHEQUE")


# 1. PAYMENT - never edited, only flagged CANCELLED
class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)

    # Unique Receipt Number: REC-2025-26-0001
    receipt_no = Column(String(40), unique=True, nullable=False, index=True)
    receipt_sequence = Column(Integer, nullable=False)

    student_enrollment_id = Column(Integer, ForeignKey("student_enrollments.id"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False, index=True)

    total_amount = Column(Float, nullable=False)
    payment_method = Column(String(20), default="CASH")
    payment_date = Column(Date, default=datetime.date.today, index=True)
    remarks = Column(String(500), nullable=True)
    status = Column(String(20), default="ACTIVE")  # ACTIVE / CANCELLED

    # Snapshots for receipt rendering
    student = Column(JSON, default=dict)
    class_info = Column(JSON, default=dict)
    academic_year = Column(JSON, default=dict)

    # Breakdown (JSON: [{"fee_id", "fee_template_id", "fee_template_name", "amount", "fee_balance"}])
    payment_items = Column(JSON, default=list)

    # Audit Trail
    created_by = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    cancelled_by = Column(String(50), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    version_id = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}


# 2. RECEIPT COUNTER - For generating unique receipt numbers per academic year
class ReceiptCounter(Base):
    __tablename__ = "receipt_counters"

    id = Column(Integer, primary_key=True, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False, unique=True)
    last_number = Column(Integer, nullable=False, default=0)  # Last used receipt number for this year
