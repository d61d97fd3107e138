import datetime
import os

# Keep the app's own engine off disk while tests import main
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.masters import AcademicYear, ClassMaster
from models.students import Student
from services import fee_structures, templates


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db(session_factory):
    """A second session on the same database, standing in for a concurrent request"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _login(client, username, password):
    res = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin")


@pytest.fixture
def staff_headers(client):
    return _login(client, "staff", "staff")


# ---------------------
# Factories
# ---------------------

@pytest.fixture
def year(db):
    ay = AcademicYear(
        year="2025-26",
        start_date=datetime.date(2025, 4, 1),
        end_date=datetime.date(2026, 3, 31),
        is_active=True,
    )
    db.add(ay)
    db.commit()
    db.refresh(ay)
    return ay


@pytest.fixture
def make_class(db):
    def _make(name, order=0):
        class_val = ClassMaster(class_name=name, order=order, status=True)
        db.add(class_val)
        db.commit()
        db.refresh(class_val)
        return class_val
    return _make


@pytest.fixture
def class5(make_class):
    return make_class("Class 5", 5)


@pytest.fixture
def make_student(db):
    def _make(admission_no="ADM-0001", name="Aarav Sharma", active=True):
        student = Student(admission_no=admission_no, student_name=name,
                          father_name="Rakesh Sharma", mobile_number="9876543210", status=active)
        db.add(student)
        db.commit()
        db.refresh(student)
        return student
    return _make


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def fee_templates(db):
    return {
        "School": templates.create_fee_template(db, "School Fee", "REGULAR", 1),
        "Van": templates.create_fee_template(db, "Van Fee", "OPTIONAL", 2),
        "Exam": templates.create_fee_template(db, "Exam Fee", "EXAMINATION", 3),
    }


@pytest.fixture
def scholarship_templates(db):
    return {
        "Merit": templates.create_scholarship_template(db, "Merit Scholarship", "MERIT", 1),
        "Sibling": templates.create_scholarship_template(db, "Sibling Concession", "NEED_BASED", 2),
    }


@pytest.fixture
def structure(db, year, class5, fee_templates, scholarship_templates):
    """School 1000 (compulsory), Van 500 (optional, editable), Merit 200 (auto), Sibling 100 (manual)"""
    return fee_structures.create_fee_structure(
        db,
        academic_year_id=year.id,
        class_id=class5.id,
        name=None,
        fee_items=[
            {"template_id": fee_templates["School"].id, "amount": 1000, "is_compulsory": True},
            {"template_id": fee_templates["Van"].id, "amount": 500, "is_compulsory": False,
             "is_editable_during_enrollment": True},
        ],
        scholarship_items=[
            {"template_id": scholarship_templates["Merit"].id, "amount": 200, "is_auto_applied": True},
            {"template_id": scholarship_templates["Sibling"].id, "amount": 100},
        ],
    )


def line_for(enrollment, template_name):
    return next(line for line in enrollment.fees if line["template_name"] == template_name)


def assert_ledger_invariants(enrollment):
    eps = 0.01
    totals = enrollment.totals
    for line in enrollment.fees:
        assert abs(line["amount_due"] - max(0.0, line["amount"] - line["amount_paid"])) < eps
        assert line["amount_paid"] <= line["amount"] + eps
    assert abs(totals["fees"]["total"] - sum(f["amount"] for f in enrollment.fees)) < eps
    assert abs(totals["fees"]["paid"] - sum(f["amount_paid"] for f in enrollment.fees)) < eps
    assert abs(totals["fees"]["due"] - sum(f["amount_due"] for f in enrollment.fees)) < eps
    applied = sum(s["amount"] for s in enrollment.scholarships if s["is_active"])
    assert abs(totals["scholarships"]["applied"] - applied) < eps
    net = totals["net_amount"]
    assert abs(net["total"] - (totals["fees"]["total"] - totals["scholarships"]["applied"])) < eps
    assert abs(net["due"] - max(0.0, net["total"] - net["paid"])) < eps

    status = enrollment.fee_status["status"]
    if net["due"] <= 0:
        assert status == "PAID"
    elif net["paid"] == 0:
        assert status == "OVERDUE"
    else:
        assert status == "PARTIAL"
