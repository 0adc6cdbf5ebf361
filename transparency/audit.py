"""
transparency/audit.py

Audit trail for chain writes.

Goals:
- Capture WHAT was submitted, to WHICH ledger, and the resulting tx hash.
- Store the caller IP for traceability.

IMPORTANT:
- Only successful submissions are recorded; a rejected write has no hash.
- The chain is the system of record; this table is a local trace, never read
  back by the aggregation layer.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request

from .extensions import db
from .models import AuditLog


def _safe_str(value: Any) -> Optional[str]:
    """Stable string form for JSON storage (Decimal, datetime, ...)."""
    if value is None:
        return None
    try:
        return str(value)
    except Exception:
        return repr(value)


def log_submission(
    action: str,
    entity_type: str,
    tx_hash: str,
    *,
    entity_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add and commit an AuditLog row for a confirmed write.

    SECURITY NOTE:
    - request.remote_addr is as Flask sees it. Behind a reverse proxy configure
      ProxyFix so the real client IP is captured.
    """
    if not tx_hash:
        raise ValueError("log_submission requires the transaction hash of a confirmed write.")

    entry = AuditLog(
        action=str(action),
        entity_type=str(entity_type),
        entity_id=int(entity_id) if entity_id is not None else None,
        tx_hash=tx_hash,
        payload=json.dumps({k: _safe_str(v) for k, v in payload.items()}, ensure_ascii=False) if payload else None,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    db.session.commit()
    return entry
