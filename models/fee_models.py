"""
Fee Management Models - Templates, class-wise Fee Structures
Line items and totals are stored as JSON so one row is one complete document
"""
from sqlalchemy import Column, Integer, String, Boolean, Date, ForeignKey, Text, JSON, UniqueConstraint
from database import Base
import datetime


FEE_CATEGORIES = ("REGULAR", "OPTIONAL", "ACTIVITY", "EXAMINATION", "LATE_FEE")
SCHOLARSHIP_TYPES = ("MERIT", "NEED_BASED", "GOVERNMENT", "SPORTS", "MINORITY", "GENERAL")


# 1. FEE TEMPLATE - Reusable fee types (Tuition, Van, Exam, etc.)
class FeeTemplate(Base):
    __tablename__ = "fee_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)  # e.g., "Tuition Fee"
    category = Column(String(20), nullable=False, default="REGULAR")
    order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(Date, default=datetime.date.today)


# 2. SCHOLARSHIP TEMPLATE - Reusable concession types
class ScholarshipTemplate(Base):
    __tablename__ = "scholarship_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)  # e.g., "Merit Scholarship"
    type = Column(String(20), nullable=False, default="GENERAL")
    order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(Date, default=datetime.date.today)


# 3. FEE STRUCTURE - Priced bundle for one (academic year, class)
class FeeStructure(Base):
    __tablename__ = "fee_structures"

    id = Column(Integer, primary_key=True, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    # Snapshots (JSON: {"year": "2025-26", ...}, {"class_name": "Class 5", ...})
    academic_year = Column(JSON, default=dict)
    class_info = Column(JSON, default=dict)

    # Lines (JSON arrays, see services.fee_structures for the shape)
    fee_items = Column(JSON, default=list)
    scholarship_items = Column(JSON, default=list)

    # Derived totals: {"compulsory", "optional", "total"} / {"auto_applied", "manual", "total"}
    total_fees = Column(JSON, default=dict)
    total_scholarships = Column(JSON, default=dict)

    created_by = Column(String(50), default="Admin")
    created_at = Column(Date, default=datetime.date.today)
    updated_at = Column(Date, default=datetime.date.today, onupdate=datetime.date.today)

    # One fee structure per class per academic year
    __table_args__ = (
        UniqueConstraint('academic_year_id', 'class_id', name='uq_structure_year_class'),
    )
