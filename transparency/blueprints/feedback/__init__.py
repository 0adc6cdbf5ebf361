"""
Blueprint package export.

Must expose feedback_bp for app factory registration.
"""

from __future__ import annotations

from .routes import feedback_bp  # noqa: F401
