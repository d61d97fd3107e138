from sqlalchemy import Column, Integer, String, Boolean, Date
from database import Base

# 1. CLASS TABLE
class ClassMaster(Base):
    __tablename__ = "classes"
    id = Column(Integer, primary_key=True, index=True)
    class_name = Column(String(50), unique=True, index=True)
    order = Column(Integer, default=0)
    status = Column(Boolean, default=True)

    def snapshot(self):
        """Denormalized copy stored inside structures, enrollments and payments"""
        return {"class_name": self.class_name, "is_active": bool(self.status)}


# 2. ACADEMIC YEAR TABLE
class AcademicYear(Base):
    __tablename__ = "academic_years"
    id = Column(Integer, primary_key=True, index=True)
    year = Column(String(7), unique=True, nullable=False, index=True)  # e.g. "2025-26"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False)

    def snapshot(self):
        return {
            "year": self.year,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": bool(self.is_active),
        }
