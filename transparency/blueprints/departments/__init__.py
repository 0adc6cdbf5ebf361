"""
Blueprint package export.

Must expose departments_bp for app factory registration.
"""

from __future__ import annotations

from .routes import departments_bp  # noqa: F401
