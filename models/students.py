from sqlalchemy import Column, Integer, String, Boolean, Date
from database import Base
import datetime

class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    admission_no = Column(String(50), unique=True, index=True, nullable=False)
    student_name = Column(String(100), nullable=False)

    # --- PARENTS INFO ---
    father_name = Column(String(100))
    mobile_number = Column(String(15))

    status = Column(Boolean, default=True)  # Active / Inactive
    created_at = Column(Date, default=datetime.date.today)

    def snapshot(self):
        """Student details frozen into enrollments and receipts"""
        return {
            "admission_number": self.admission_no,
            "name": self.student_name,
            "father_name": self.father_name or "",
            "mobile_no": self.mobile_number or "",
            "status": "ACTIVE" if self.status else "INACTIVE",
        }
