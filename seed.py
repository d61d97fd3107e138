import datetime

from database import SessionLocal, engine, Base
from errors import ConflictError
from models.masters import ClassMaster, AcademicYear
from models.students import Student
from models.fee_models import FeeTemplate, ScholarshipTemplate
from models.enrollment import StudentEnrollment
from models.payments import Payment, ReceiptCounter
from services import fee_structures, templates

# Creates any missing tables
Base.metadata.create_all(bind=engine)

# Database Connection
db = SessionLocal()


def seed_data():
    print("🌱 Seeding Master Data...")

    # 1. ADD CLASSES (Class 1 to Class 12)
    classes = [f"Class {n}" for n in range(1, 13)]

    class_objects = {}

    for order, c_name in enumerate(classes, start=1):
        exists = db.query(ClassMaster).filter_by(class_name=c_name).first()
        if not exists:
            new_class = ClassMaster(class_name=c_name, order=order)
            db.add(new_class)
            db.commit()
            db.refresh(new_class)
            class_objects[c_name] = new_class.id
            print(f"✅ Added: {c_name}")
        else:
            class_objects[c_name] = exists.id
            print(f"ℹ️  Exists: {c_name}")

    # 2. ADD ACADEMIC YEAR
    year = db.query(AcademicYear).filter_by(year="2025-26").first()
    if not year:
        year = AcademicYear(
            year="2025-26",
            start_date=datetime.date(2025, 4, 1),
            end_date=datetime.date(2026, 3, 31),
            is_active=True,
        )
        db.add(year)
        db.commit()
        db.refresh(year)
        print("📅 Added Academic Year: 2025-26")

    # 3. ADD FEE TEMPLATES
    heads = [
        {"name": "School Fee", "category": "REGULAR"},
        {"name": "Van Fee", "category": "OPTIONAL"},
        {"name": "Exam Fee", "category": "EXAMINATION"},
        {"name": "Annual Function", "category": "ACTIVITY"},
    ]

    fee_ids = {}
    for order, h in enumerate(heads, start=1):
        exists = db.query(FeeTemplate).filter_by(name=h["name"]).first()
        if not exists:
            exists = templates.create_fee_template(db, h["name"], h["category"], order)
            print(f"💰 Added Fee Template: {h['name']}")
        fee_ids[h["name"]] = exists.id

    # 4. ADD SCHOLARSHIP TEMPLATES
    concessions = [
        {"name": "Merit Scholarship", "type": "MERIT"},
        {"name": "Sibling Concession", "type": "NEED_BASED"},
    ]

    scholarship_ids = {}
    for order, s in enumerate(concessions, start=1):
        exists = db.query(ScholarshipTemplate).filter_by(name=s["name"]).first()
        if not exists:
            exists = templates.create_scholarship_template(db, s["name"], s["type"], order)
            print(f"🎓 Added Scholarship Template: {s['name']}")
        scholarship_ids[s["name"]] = exists.id

    # 5. SAMPLE FEE STRUCTURE (Class 5, 2025-26)
    try:
        fee_structures.create_fee_structure(
            db,
            academic_year_id=year.id,
            class_id=class_objects["Class 5"],
            name=None,
            fee_items=[
                {"template_id": fee_ids["School Fee"], "amount": 1000},
                {"template_id": fee_ids["Van Fee"], "amount": 500,
                 "is_compulsory": False, "is_editable_during_enrollment": True},
            ],
            scholarship_items=[
                {"template_id": scholarship_ids["Merit Scholarship"], "amount": 200, "is_auto_applied": True},
                {"template_id": scholarship_ids["Sibling Concession"], "amount": 100},
            ],
            created_by="seed",
        )
        print("🧾 Added Fee Structure: Class 5 - 2025-26")
    except ConflictError:
        print("ℹ️  Exists: Fee Structure for Class 5 - 2025-26")

    # 6. SAMPLE STUDENT
    if not db.query(Student).filter_by(admission_no="ADM-0001").first():
        db.add(Student(admission_no="ADM-0001", student_name="Aarav Sharma",
                       father_name="Rakesh Sharma", mobile_number="9876543210"))
        db.commit()
        print("👦 Added Student: Aarav Sharma")

    print("\n🎉 All Data Seeded Successfully!")
    db.close()


if __name__ == "__main__":
    seed_data()
