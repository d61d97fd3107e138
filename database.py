from contextlib import contextmanager
import datetime

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from config import config
from errors import ConcurrencyError, ConflictError

DATABASE_URL = config.DATABASE_URL

# For SQLite, enable check_same_thread=False for FastAPI's threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow():
    """Naive UTC timestamp for the DateTime columns"""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Unique-key failures we know how to name. SQLite reports table.column,
# PostgreSQL and MySQL report the constraint or index name.
UNIQUE_VIOLATIONS = (
    (("uq_enrollment_student_year", "student_enrollments.student_id"),
     ConflictError, "Student is already enrolled for this academic year"),
    (("uq_structure_year_class", "fee_structures.academic_year_id"),
     ConflictError, "A fee structure already exists for this class and academic year"),
    (("fee_templates.name", "scholarship_templates.name",
      "fee_templates_name_key", "scholarship_templates_name_key"),
     ConflictError, "A template with this name already exists"),
    (("receipt_counters",),
     ConcurrencyError, "Another receipt was issued at the same time, please retry"),
    (("payments.receipt_no", "ix_payments_receipt_no"),
     ConcurrencyError, "Another receipt was issued at the same time, please retry"),
)


def translate_integrity_error(exc: IntegrityError):
    """Return the fee ledger error for a known unique violation, else None"""
    message = str(exc.orig)
    lowered = message.lower()
    if "unique" not in lowered and "duplicate" not in lowered:
        return None
    for markers, error_class, text in UNIQUE_VIOLATIONS:
        if any(marker in message for marker in markers):
            return error_class(text)
    return None


@contextmanager
def atomic(db):
    """
    Unit of work for one fee ledger operation.

    Commits when the block finishes, rolls back on any error. A stale
    version check or a lost receipt counter race becomes ConcurrencyError
    so the caller can retry with a fresh read. A duplicate enrollment or
    structure becomes ConflictError. Other integrity errors propagate as is.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrencyError(
            "The record was changed by another request, please retry"
        ) from exc
    except IntegrityError as exc:
        db.rollback()
        error = translate_integrity_error(exc)
        if error is None:
            raise
        raise error from exc
    except Exception:
        db.rollback()
        raise
