"""
Student Enrollment - a student's personal copy of a Fee Structure for one academic year
(CORE TABLE: every payment and cancellation rewrites the fees / totals / fee_status documents)
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, JSON, UniqueConstraint
from database import Base, utcnow
import datetime


class StudentEnrollment(Base):
    __tablename__ = "student_enrollments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    section = Column(String(10), nullable=False)
    enrollment_date = Column(Date, default=datetime.date.today)
    is_active = Column(Boolean, default=True, index=True)

    # Snapshots captured at enrollment time
    student = Column(JSON, default=dict)
    academic_year = Column(JSON, default=dict)
    class_info = Column(JSON, default=dict)

    # Ledger documents
    fees = Column(JSON, default=list)
    scholarships = Column(JSON, default=list)
    totals = Column(JSON, default=dict)
    fee_status = Column(JSON, default=dict)

    # Optimistic lock, bumped on every UPDATE
    version_id = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    # One enrollment per student per academic year
    __table_args__ = (
        UniqueConstraint('student_id', 'academic_year_id', name='uq_enrollment_student_year'),
    )
