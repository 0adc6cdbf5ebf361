"""
transparency/security.py

Access control for the admin API.

Key rules:
- UI is never trusted; the check is server-side.
- Admin routes require the shared token from config ADMIN_API_TOKEN,
  sent as `X-Admin-Token` (or `Authorization: Bearer <token>`).
- If no token is configured the guard is open (local development only);
  create_app logs a warning at startup in that case.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Any, Callable, Optional

from flask import current_app, jsonify, request


def _presented_token() -> Optional[str]:
    token = request.headers.get("X-Admin-Token")
    if token:
        return token.strip()
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return None


def is_admin() -> bool:
    """Return True if the request carries the configured admin token."""
    expected = current_app.config.get("ADMIN_API_TOKEN")
    if not expected:
        return True
    presented = _presented_token()
    return bool(presented) and hmac.compare_digest(presented, expected)


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: admin-only. Works for sync and async views."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        if not is_admin():
            return jsonify({"success": False, "error": "Admin token required"}), 403
        return current_app.ensure_sync(view_func)(*args, **kwargs)

    return wrapper
