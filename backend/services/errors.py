# backend/services/errors.py
"""
Errors raised by the stock ledger.

Every error carries a stable ``kind`` for programmatic handling, a
human-readable ``message`` and a ``data`` dict with context. The HTTP layer
renders them through ``as_dict()`` with ``status_code``.

Usage:
    try:
        ledger.create(owner_id, payload)
    except InsufficientStockError as e:
        print(e.data["available"])
"""

from typing import Any


class LedgerError(Exception):
    kind = "LEDGER_ERROR"
    status_code = 400
    default_message = "Stock ledger error"

    def __init__(self, message: str | None = None, **data: Any):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "data": self.data}


class ValidationError(LedgerError):
    """Missing or invalid fields for the movement type; nothing was changed."""

    kind = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid movement"


class InsufficientStockError(ValidationError):
    """The command would leave a balance below zero (reject policy)."""

    kind = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock"


class NotFoundError(LedgerError):
    """Movement, product or warehouse does not exist or belongs to someone else."""

    kind = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class ConcurrencyConflict(LedgerError):
    """Concurrent commands kept colliding on the same rows; retries exhausted."""

    kind = "CONCURRENCY_CONFLICT"
    status_code = 409
    default_message = "Concurrent modification detected, please retry"


class PersistenceError(LedgerError):
    """The database failed; the unit of work was rolled back."""

    kind = "PERSISTENCE_ERROR"
    status_code = 503
    default_message = "Storage failure"
