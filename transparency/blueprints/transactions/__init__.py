"""
Blueprint package export.

Must expose transactions_bp for app factory registration.
"""

from __future__ import annotations

from .routes import transactions_bp  # noqa: F401
