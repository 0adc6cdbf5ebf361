"""
transparency/blueprints/admin/routes.py

Admin Routes – government officials

Includes:
- Record a spending transaction on the ledger
- Dashboard: recent transactions, department spending, overall statistics

NOTES:
- Protected by the admin token guard (security.admin_required).
- Validation happens server-side in SpendingService before any chain call.
- Audit is written only after the chain confirmed the write.
"""

from __future__ import annotations

from flask import Blueprint, request

from ...audit import log_submission
from ...errors import ValidationError
from ...security import admin_required
from ...utils import get_service, ok

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/transaction", methods=["POST"])
@admin_required
async def record_transaction():
    """
    POST {"department", "projectName", "projectType", "budgetAllocated",
          "amountSpent", "location", "description"}

    Amounts are decimal strings in native token units.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("JSON body required")

    tx_hash = await get_service().record_transaction(payload)
    log_submission(
        "RECORD_TRANSACTION",
        "GovernmentSpending",
        tx_hash,
        payload={
            k: payload.get(k)
            for k in ("department", "projectName", "projectType", "budgetAllocated", "amountSpent", "location")
        },
    )
    return ok({"txHash": tx_hash}, status=201, message="Transaction recorded successfully", txHash=tx_hash)


@admin_bp.route("/dashboard", methods=["GET"])
@admin_required
async def dashboard():
    return ok(await get_service().admin_dashboard())
