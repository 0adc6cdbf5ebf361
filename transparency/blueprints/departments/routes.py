"""
transparency/blueprints/departments/routes.py

Department endpoints: ledger department ids labelled from the local catalog,
per-department totals and per-department transaction pages.
"""

from __future__ import annotations

from flask import Blueprint

from ...utils import get_service, ok, pagination_args

departments_bp = Blueprint("departments", __name__, url_prefix="/api/departments")


@departments_bp.route("/", methods=["GET"], strict_slashes=False)
async def list_departments():
    return ok(await get_service().departments())


@departments_bp.route("/analytics", methods=["GET"])
async def department_analytics():
    """Same payload as /api/transactions/stats/by-department."""
    return ok(await get_service().department_analytics())


@departments_bp.route("/<department_id>/spending", methods=["GET"])
async def department_spending(department_id: str):
    return ok(await get_service().department_spending(department_id))


@departments_bp.route("/<department_id>/transactions", methods=["GET"])
async def department_transactions(department_id: str):
    limit, offset = pagination_args(default_limit=50)
    page, total = await get_service().department_transactions(department_id, limit, offset)
    return ok(
        [v.to_dict() for v in page],
        pagination={"limit": limit, "offset": offset, "total": total},
    )
