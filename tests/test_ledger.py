from services.ledger import (
    apply_to_line, enrollment_totals, fee_status_for, line_due, money, reverse_on_line,
    status_for, structure_fee_totals, structure_scholarship_totals
)
from services.receipts import amount_in_words, number_to_words


def _fee(amount, paid=0.0):
    return {"id": "x", "amount": amount, "amount_paid": paid, "amount_due": line_due(amount, paid)}


def _totals(total, paid):
    return enrollment_totals([_fee(total, paid)], [])


def test_money_rounds_to_two_places():
    assert money(10.004) == 10.0
    assert money(None) == 0.0
    assert money("12.5") == 12.5


def test_line_due_never_negative():
    assert line_due(500, 300) == 200
    assert line_due(500, 600) == 0.0


def test_structure_totals_split_compulsory_and_optional():
    totals = structure_fee_totals([
        {"amount": 1000, "is_compulsory": True},
        {"amount": 500, "is_compulsory": False},
    ])
    assert totals == {"compulsory": 1000.0, "optional": 500.0, "total": 1500.0}

    sch = structure_scholarship_totals([
        {"amount": 200, "is_auto_applied": True},
        {"amount": 100, "is_auto_applied": False},
    ])
    assert sch == {"auto_applied": 200.0, "manual": 100.0, "total": 300.0}


def test_enrollment_totals_net_of_scholarships():
    fees = [_fee(1000, 400), _fee(500)]
    scholarships = [{"amount": 200, "is_active": True}, {"amount": 50, "is_active": False}]
    totals = enrollment_totals(fees, scholarships)

    assert totals["fees"] == {"total": 1500.0, "paid": 400.0, "due": 1100.0}
    assert totals["scholarships"]["applied"] == 200.0
    assert totals["net_amount"] == {"total": 1300.0, "paid": 400.0, "due": 900.0}


def test_net_due_clamped_when_scholarship_covers_balance():
    totals = enrollment_totals([_fee(1000, 900)], [{"amount": 200, "is_active": True}])
    assert totals["net_amount"]["due"] == 0.0
    assert status_for(totals) == "PAID"


def test_status_transitions():
    assert status_for(_totals(1000, 0)) == "OVERDUE"
    assert status_for(_totals(1000, 400)) == "PARTIAL"
    assert status_for(_totals(1000, 1000)) == "PAID"


def test_fee_status_reports_overdue_amount_only_when_overdue():
    overdue = fee_status_for(_totals(1000, 0))
    assert overdue["status"] == "OVERDUE"
    assert overdue["overdue_amount"] == 1000.0
    assert overdue["next_due_date"] is None

    partial = fee_status_for(_totals(1000, 400), "2025-06-01")
    assert partial["overdue_amount"] == 0.0
    assert partial["last_payment_date"] == "2025-06-01"


def test_apply_and_reverse_return_new_lines():
    line = _fee(500)
    paid = apply_to_line(line, 300)
    assert line["amount_paid"] == 0
    assert paid["amount_paid"] == 300.0
    assert paid["amount_due"] == 200.0

    back = reverse_on_line(paid, 300)
    assert back == line


def test_reverse_is_clamped_at_zero():
    assert reverse_on_line(_fee(500, 100), 300)["amount_paid"] == 0.0


def test_number_to_words():
    assert number_to_words(0) == "Zero Only"
    assert number_to_words(1300) == "One Thousand Three Hundred Only"
    assert number_to_words(125000) == "One Lakh Twenty Five Thousand Only"


def test_amount_in_words_keeps_paise():
    assert amount_in_words(1000) == "One Thousand Only"
    assert amount_in_words(1000.0) == "One Thousand Only"
    assert amount_in_words(1250.5) == "One Thousand Two Hundred Fifty Rupees and Fifty Paise Only"
    assert amount_in_words(0.75) == "Seventy Five Paise Only"
    assert amount_in_words(19.99) == "Nineteen Rupees and Ninety Nine Paise Only"
