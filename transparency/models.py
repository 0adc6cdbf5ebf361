"""
transparency/models.py

Local relational models.

Only two things live in the database:
- Department: the fixed ministry catalog (code, display name, localized name)
  used to label the department ids found on the spending ledger.
- AuditLog: one row per successful write submission (who/what/which tx hash).

IMPORTANT:
- Spending and feedback records are NEVER stored here. Every read goes to the chain.
"""

from __future__ import annotations

from datetime import datetime

from .extensions import db


class Department(db.Model):
    """Ministry catalog entry, keyed by the code used on the ledger (e.g. MOH)."""

    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(20), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    name_ms = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    sort_order = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {"id": self.code, "name": self.name, "nameMs": self.name_ms}

    def __repr__(self):
        return f"<Department {self.code}>"


class AuditLog(db.Model):
    """Trace of every write the API pushed to the chain."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    action = db.Column(db.String(50), nullable=False, index=True)

    # Ledger the write went to ("GovernmentSpending" / "CitizenFeedback") and the
    # referenced record id when the write targets one (feedback -> transaction id).
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)

    tx_hash = db.Column(db.String(66), nullable=False, unique=True, index=True)
    payload = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.tx_hash}>"
