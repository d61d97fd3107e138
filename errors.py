"""
Fee ledger error taxonomy.

Services raise these before any write happens; main.py turns them into
JSON responses with the status code carried by each class.
"""


class FeeLedgerError(Exception):
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FeeLedgerError):
    """Malformed or missing input (amount <= 0, total mismatch, unknown fee line)."""
    status_code = 400


class NotFoundError(FeeLedgerError):
    status_code = 404


class ConflictError(FeeLedgerError):
    """Uniqueness violation: duplicate enrollment, duplicate structure."""
    status_code = 409


class InvalidStateError(FeeLedgerError):
    """Operation not permitted given the current data."""
    status_code = 400


class AlreadyCancelledError(InvalidStateError):
    status_code = 409


class AuthorizationError(FeeLedgerError):
    status_code = 403


class ConcurrencyError(FeeLedgerError):
    """Transient write conflict; safe to retry with a fresh read."""
    status_code = 409
    retryable = True
