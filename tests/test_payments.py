import copy
import datetime

import pytest

from conftest import assert_ledger_invariants, line_for
from errors import (
    AlreadyCancelledError, AuthorizationError, InvalidStateError, NotFoundError, ValidationError
)
from models.payments import Payment
from services import enrollments, payments
from services.receipts import get_receipt


@pytest.fixture
def enrollment(db, student, structure):
    return enrollments.enroll(db, student.id, structure.academic_year_id, structure.class_id, "A")


def _collect(db, enrollment, template_name, amount, **kwargs):
    line = line_for(enrollment, template_name)
    return payments.collect_payment(
        db, enrollment.id, [{"fee_id": line["id"], "amount": amount}], amount, **kwargs
    )


def _state(enrollment):
    return copy.deepcopy((enrollment.fees, enrollment.totals, enrollment.fee_status))


def test_class5_scenario(db, enrollment):
    assert enrollment.totals["fees"]["total"] == 1500.0
    assert enrollment.totals["scholarships"]["applied"] == 200.0
    assert enrollment.totals["net_amount"]["total"] == 1300.0
    assert enrollment.totals["net_amount"]["due"] == 1300.0
    assert enrollment.fee_status["status"] == "OVERDUE"

    first = _collect(db, enrollment, "School Fee", 1000)
    db.refresh(enrollment)
    assert enrollment.totals["fees"]["paid"] == 1000.0
    assert enrollment.totals["net_amount"]["paid"] == 1000.0
    assert enrollment.totals["net_amount"]["due"] == 300.0
    assert enrollment.fee_status["status"] == "PARTIAL"
    assert_ledger_invariants(enrollment)

    second = _collect(db, enrollment, "Van Fee", 300)
    db.refresh(enrollment)
    assert enrollment.totals["net_amount"]["due"] == 0.0
    assert enrollment.fee_status["status"] == "PAID"
    assert_ledger_invariants(enrollment)

    history = payments.get_payments_for_enrollment(db, enrollment.id)
    assert [p.id for p in history] == [first.id, second.id]
    assert first.receipt_no == "REC-2025-26-0001"
    assert second.receipt_no == "REC-2025-26-0002"
    assert second.receipt_sequence > first.receipt_sequence


def test_payment_snapshot_and_breakdown(db, enrollment):
    payment = _collect(db, enrollment, "School Fee", 400, payment_method="ONLINE", remarks="June")

    assert payment.status == "ACTIVE"
    assert payment.payment_method == "ONLINE"
    assert payment.student["name"] == "Aarav Sharma"
    assert payment.class_info == {"class_name": "Class 5", "is_active": True, "section": "A"}
    assert payment.academic_year["year"] == "2025-26"
    (item,) = payment.payment_items
    assert item["fee_template_name"] == "School Fee"
    assert item["amount"] == 400.0
    assert item["fee_balance"] == 600.0


def test_multi_line_payment(db, enrollment):
    school = line_for(enrollment, "School Fee")
    van = line_for(enrollment, "Van Fee")
    payment = payments.collect_payment(
        db, enrollment.id,
        [{"fee_id": school["id"], "amount": 500}, {"fee_id": van["id"], "amount": 250.5}],
        750.5,
    )
    db.refresh(enrollment)

    assert payment.total_amount == 750.5
    assert line_for(enrollment, "Van Fee")["amount_due"] == 249.5
    assert enrollment.totals["net_amount"]["paid"] == 750.5
    assert_ledger_invariants(enrollment)


def test_overpayment_rejected(db, enrollment):
    with pytest.raises(ValidationError):
        _collect(db, enrollment, "Van Fee", 500.01)

    _collect(db, enrollment, "Van Fee", 500)
    db.refresh(enrollment)
    with pytest.raises(ValidationError):
        _collect(db, enrollment, "Van Fee", 1)


def test_invalid_payment_requests(db, enrollment):
    school = line_for(enrollment, "School Fee")

    with pytest.raises(ValidationError, match="Total mismatch"):
        payments.collect_payment(db, enrollment.id, [{"fee_id": school["id"], "amount": 100}], 150)
    with pytest.raises(ValidationError, match="Fee item invalid"):
        payments.collect_payment(db, enrollment.id, [{"fee_id": "missing", "amount": 100}], 100)
    with pytest.raises(ValidationError):
        payments.collect_payment(db, enrollment.id, [{"fee_id": school["id"], "amount": 0}], 0)
    with pytest.raises(ValidationError):
        payments.collect_payment(db, enrollment.id, [], 0)
    with pytest.raises(ValidationError):
        payments.collect_payment(
            db, enrollment.id, [{"fee_id": school["id"], "amount": 100}], 100, payment_method="BITCOIN"
        )
    with pytest.raises(NotFoundError):
        payments.collect_payment(db, 999, [{"fee_id": school["id"], "amount": 100}], 100)

    # nothing was written
    assert db.query(Payment).count() == 0


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_amounts_rejected(db, enrollment, bad):
    school = line_for(enrollment, "School Fee")

    with pytest.raises(ValidationError):
        payments.collect_payment(db, enrollment.id, [{"fee_id": school["id"], "amount": bad}], 100)
    with pytest.raises(ValidationError, match="finite"):
        payments.collect_payment(db, enrollment.id, [{"fee_id": school["id"], "amount": 100}], bad)

    db.refresh(enrollment)
    assert enrollment.totals["net_amount"]["paid"] == 0.0
    assert db.query(Payment).count() == 0


def test_inactive_enrollment_cannot_pay(db, enrollment):
    enrollments.deactivate_enrollment(db, enrollment.id)
    with pytest.raises(InvalidStateError):
        _collect(db, enrollment, "School Fee", 100)


def test_collect_then_cancel_round_trip(db, enrollment):
    _collect(db, enrollment, "School Fee", 250, payment_date=datetime.date(2025, 5, 1))
    db.refresh(enrollment)
    before = _state(enrollment)

    payment = _collect(db, enrollment, "Van Fee", 125.75, payment_date=datetime.date(2025, 6, 1))
    db.refresh(enrollment)
    assert enrollment.fee_status["last_payment_date"] == "2025-06-01"

    payments.cancel_payment(db, payment.id, "Wrong student", cancelled_by="admin", role="admin")
    db.refresh(enrollment)
    assert _state(enrollment) == before
    assert enrollment.fee_status["last_payment_date"] == "2025-05-01"


def test_status_moves_back_after_cancellation(db, enrollment):
    _collect(db, enrollment, "School Fee", 400)
    last = _collect(db, enrollment, "School Fee", 600)
    db.refresh(enrollment)
    assert enrollment.fee_status["status"] == "PARTIAL"

    payments.cancel_payment(db, last.id, "Bounced cheque", cancelled_by="admin", role="admin")
    db.refresh(enrollment)
    assert enrollment.totals["net_amount"]["paid"] == 400.0
    assert enrollment.fee_status["status"] == "PARTIAL"


def test_cancel_is_recorded_once(db, enrollment):
    payment = _collect(db, enrollment, "School Fee", 1000, remarks="Cash at desk")
    cancelled = payments.cancel_payment(db, payment.id, "Duplicate", cancelled_by="admin", role="admin")

    assert cancelled.status == "CANCELLED"
    assert cancelled.remarks == "Cash at desk | Cancelled: Duplicate"
    assert cancelled.cancelled_by == "admin"
    assert cancelled.cancelled_at is not None
    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
    assert abs(now - cancelled.cancelled_at) < datetime.timedelta(minutes=1)
    assert abs(now - cancelled.created_at) < datetime.timedelta(minutes=1)

    db.refresh(enrollment)
    after_first = _state(enrollment)
    assert enrollment.fee_status["status"] == "OVERDUE"

    with pytest.raises(AlreadyCancelledError):
        payments.cancel_payment(db, payment.id, "Again", cancelled_by="admin", role="admin")
    db.refresh(enrollment)
    assert _state(enrollment) == after_first

    # the record stays for audit
    assert db.query(Payment).count() == 1
    assert payments.get_payments_for_enrollment(db, enrollment.id, include_cancelled=False) == []


def test_cancel_requires_admin_and_reason(db, enrollment):
    payment = _collect(db, enrollment, "School Fee", 100)

    with pytest.raises(AuthorizationError):
        payments.cancel_payment(db, payment.id, "No", cancelled_by="staff", role="staff")
    with pytest.raises(ValidationError):
        payments.cancel_payment(db, payment.id, "  ", cancelled_by="admin", role="admin")
    with pytest.raises(NotFoundError):
        payments.cancel_payment(db, 999, "Missing", cancelled_by="admin", role="admin")


def test_paid_amounts_match_active_payments(db, enrollment):
    _collect(db, enrollment, "School Fee", 300)
    doomed = _collect(db, enrollment, "School Fee", 200)
    _collect(db, enrollment, "Van Fee", 100)
    payments.cancel_payment(db, doomed.id, "Error", cancelled_by="admin", role="admin")
    db.refresh(enrollment)

    active = payments.get_payments_for_enrollment(db, enrollment.id, include_cancelled=False)
    for line in enrollment.fees:
        paid = sum(i["amount"] for p in active for i in p.payment_items if i["fee_id"] == line["id"])
        assert abs(paid - line["amount_paid"]) < 0.01


def test_receipt_counter_is_per_academic_year(db):
    assert payments.format_receipt_number("2025-26", 7) == "REC-2025-26-0007"
    assert payments.next_receipt_sequence(db, 1) == 1
    assert payments.next_receipt_sequence(db, 1) == 2
    assert payments.next_receipt_sequence(db, 2) == 1


def test_receipt_details(db, enrollment):
    payment = _collect(db, enrollment, "School Fee", 1000)
    receipt = get_receipt(db, payment.receipt_no)

    assert receipt["receipt_no"] == "REC-2025-26-0001"
    assert receipt["items"] == [{"sno": 1, "head": "School Fee", "amount": 1000.0, "balance": 0.0}]
    assert receipt["amount_in_words"] == "One Thousand Only"
    assert receipt["current_balance"] == 300.0
    assert get_receipt(db, str(payment.id))["receipt_no"] == payment.receipt_no
    with pytest.raises(NotFoundError):
        get_receipt(db, "REC-0000")


def test_receipt_words_include_paise(db, enrollment):
    payment = _collect(db, enrollment, "Van Fee", 250.5)
    receipt = get_receipt(db, payment.receipt_no)

    assert receipt["amount_in_words"] == "Two Hundred Fifty Rupees and Fifty Paise Only"
