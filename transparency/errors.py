"""
transparency/errors.py

Error taxonomy of the read/aggregation layer and the write path.

Every error carries the HTTP status the API layer maps it to, so route
handlers never translate exceptions by hand:

- ParseError / ValidationError  -> 400 (rejected before touching the chain)
- RecordNotFound                -> 404 (no such ledger id)
- RecordInactive                -> 410 (id exists but was soft-deleted)
- TransactionRejected           -> 422 (signer refused, node rejected, revert)
- ChainUnavailable              -> 503 (RPC / transport / malformed response)
"""

from __future__ import annotations


class TransparencyError(Exception):
    """Base class for all domain errors."""

    http_status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ParseError(TransparencyError):
    """Raised when a numeric string cannot be converted exactly."""

    http_status = 400

    def __init__(self, value, reason: str = "not a decimal number"):
        self.value = value
        super().__init__(f"Cannot parse amount {value!r}: {reason}")


class ValidationError(TransparencyError):
    """Raised when an application-level invariant is violated before submission."""

    http_status = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class RecordNotFound(TransparencyError):
    """Raised when a ledger id has no corresponding record."""

    http_status = 404

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class RecordInactive(TransparencyError):
    """Raised by the API layer when a record exists but has been soft-deleted."""

    http_status = 410

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} has been removed")


class TransactionRejected(TransparencyError):
    """Raised when a write is declined by the signer, the node or the contract."""

    http_status = 422

    def __init__(self, method: str, reason: str, tx_hash: str | None = None):
        self.method = method
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(f"{method} rejected: {reason}")


class ChainUnavailable(TransparencyError):
    """Raised when the chain node cannot be reached or answers with garbage."""

    http_status = 503

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Chain unavailable during {operation}{detail}")
