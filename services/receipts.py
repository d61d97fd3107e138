"""
Receipt data for printing - built only from the Payment's own snapshots
"""
from sqlalchemy.orm import Session

from errors import NotFoundError
from models.enrollment import StudentEnrollment
from models.payments import Payment
from services.ledger import money


ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
        "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
        "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _words(n):
    result = ""

    if n >= 10000000:  # Crore
        result += _words(n // 10000000) + " Crore "
        n %= 10000000

    if n >= 100000:  # Lakh
        result += _words(n // 100000) + " Lakh "
        n %= 100000

    if n >= 1000:  # Thousand
        result += _words(n // 1000) + " Thousand "
        n %= 1000

    if n >= 100:  # Hundred
        result += ONES[n // 100] + " Hundred "
        n %= 100

    if n >= 20:
        result += TENS[n // 10] + " "
        n %= 10

    if n > 0:
        result += ONES[n] + " "

    return " ".join(result.split())


def number_to_words(num):
    """Convert a whole number to words (Indian format)"""
    if num == 0:
        return "Zero Only"
    if num < 0:
        return "Minus " + number_to_words(-num)

    return _words(num) + " Only"


def amount_in_words(amount):
    """
    Rupee amount in words, paise included.

    1000 -> "One Thousand Only"
    1250.5 -> "One Thousand Two Hundred Fifty Rupees and Fifty Paise Only"
    """
    cents = int(round(money(amount) * 100))
    if cents < 0:
        return "Minus " + amount_in_words(-cents / 100)
    rupees, paise = divmod(cents, 100)
    if not paise:
        return number_to_words(rupees)
    if not rupees:
        return f"{_words(paise)} Paise Only"
    return f"{_words(rupees)} Rupees and {_words(paise)} Paise Only"


def get_receipt(db: Session, receipt_no: str):
    """Receipt details for printing; falls back to the payment id"""
    payment = db.query(Payment).filter(Payment.receipt_no == receipt_no).first()

    if not payment and receipt_no.isdigit():
        payment = db.query(Payment).filter(Payment.id == int(receipt_no)).first()

    if not payment:
        raise NotFoundError("Receipt not found")

    enrollment = db.query(StudentEnrollment).filter(
        StudentEnrollment.id == payment.student_enrollment_id
    ).first()

    items = [
        {
            "sno": idx,
            "head": item["fee_template_name"],
            "amount": item["amount"],
            "balance": item["fee_balance"],
        }
        for idx, item in enumerate(payment.payment_items or [], start=1)
    ]

    return {
        "receipt_no": payment.receipt_no,
        "date": payment.payment_date.isoformat(),
        "status": payment.status,
        "student": payment.student,
        "class_info": payment.class_info,
        "academic_year": payment.academic_year,
        "items": items,
        "total_amount": payment.total_amount,
        "payment_method": payment.payment_method,
        "remarks": payment.remarks,
        "created_by": payment.created_by,
        "amount_in_words": amount_in_words(payment.total_amount),
        "current_balance": enrollment.totals["net_amount"]["due"] if enrollment else None,
    }
