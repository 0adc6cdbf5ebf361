"""
Blueprint package export.

Must expose admin_bp for app factory registration.
"""

from __future__ import annotations

from .routes import admin_bp  # noqa: F401
