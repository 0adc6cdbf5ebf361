"""
Utility functions shared across the blueprints:
- get_service: the SpendingService bound to the running app.
- parse_optional_int / pagination_args: lenient query-string parsing.
- ok: the JSON success envelope {success, data, ...}.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from flask import current_app, jsonify, request

from .errors import ValidationError

SERVICE_KEY = "spending_service"


def get_service():
    """Return the service created (or injected) in create_app()."""
    return current_app.extensions[SERVICE_KEY]


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    """Parse an optional int from query/form. Returns None if empty/invalid."""
    if value is None:
        return None
    raw = str(value).strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def pagination_args(default_limit: int) -> Tuple[int, int]:
    """limit/offset from the query string; garbage falls back to defaults, negatives are rejected."""
    limit = parse_optional_int(request.args.get("limit"))
    offset = parse_optional_int(request.args.get("offset"))
    limit = default_limit if limit is None else limit
    offset = 0 if offset is None else offset
    if limit < 0 or offset < 0:
        raise ValidationError("limit and offset must be non-negative")
    return limit, offset


def positive_id(value: int, label: str = "transaction") -> int:
    if value <= 0:
        raise ValidationError(f"Invalid {label} ID")
    return value


def ok(data: Any = None, status: int = 200, **extra: Any):
    """Success envelope."""
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status
