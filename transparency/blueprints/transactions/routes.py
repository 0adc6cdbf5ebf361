"""
transparency/blueprints/transactions/routes.py

Spending transaction endpoints (read side + gas estimation).

Includes:
- Newest-first listing with per-column filters
- Search, single record, timestamp range
- Summary statistics and department breakdown

IMPORTANT:
- Domain errors are not caught here; the app-level handler maps them to
  status codes (ChainUnavailable -> 503, RecordNotFound -> 404, ...).
"""

from __future__ import annotations

from flask import Blueprint, request

from ...errors import RecordInactive, ValidationError
from ...service import filter_transactions
from ...utils import get_service, ok, pagination_args, parse_optional_int, positive_id

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


# ---------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------
@transactions_bp.route("/", methods=["GET"], strict_slashes=False)
async def list_transactions():
    """GET /api/transactions?limit=&offset=&department=&projectType=&location="""
    limit, offset = pagination_args(default_limit=20)
    views = await get_service().list_transactions(limit, offset)
    views = filter_transactions(
        views,
        department=(request.args.get("department") or "").strip() or None,
        project_type=(request.args.get("projectType") or "").strip() or None,
        location=(request.args.get("location") or "").strip() or None,
    )
    return ok(
        [v.to_dict() for v in views],
        pagination={"limit": limit, "offset": offset, "total": len(views)},
    )


@transactions_bp.route("/search/<path:query>", methods=["GET"])
async def search_transactions(query: str):
    limit = parse_optional_int(request.args.get("limit")) or 100
    if limit < 0:
        raise ValidationError("limit must be non-negative")
    views = await get_service().search_transactions(query, limit)
    return ok([v.to_dict() for v in views], query=query.lower(), total=len(views))


@transactions_bp.route("/range", methods=["GET"])
async def transactions_in_range():
    """GET /api/transactions/range?start=<unix>&end=<unix>"""
    start = parse_optional_int(request.args.get("start"))
    end = parse_optional_int(request.args.get("end"))
    if start is None or end is None:
        raise ValidationError("start and end query parameters are required")
    views = await get_service().transactions_between(start, end)
    return ok([v.to_dict() for v in views], total=len(views))


@transactions_bp.route("/<int:transaction_id>", methods=["GET"])
async def get_transaction(transaction_id: int):
    positive_id(transaction_id)
    view = await get_service().get_transaction(transaction_id)
    if view is None:
        raise RecordInactive("Transaction", transaction_id)
    return ok(view.to_dict())


# ---------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------
@transactions_bp.route("/stats/summary", methods=["GET"])
async def stats_summary():
    return ok(await get_service().overall_stats())


@transactions_bp.route("/stats/by-department", methods=["GET"])
async def stats_by_department():
    return ok(await get_service().department_analytics())


# ---------------------------------------------------------------------
# Gas estimation (advisory, before submission)
# ---------------------------------------------------------------------
@transactions_bp.route("/estimate-gas", methods=["POST"])
async def estimate_gas():
    """
    POST {"method": "recordTransaction", "args": [...], "ledger": "spending"}

    The estimate may differ from the cost actually paid at submission time.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("JSON body required")
    method = payload.get("method") or ""
    args = payload.get("args") or []
    ledger = payload.get("ledger") or "spending"
    if not isinstance(method, str) or not method.strip():
        raise ValidationError("method is required", field="method")
    if not isinstance(ledger, str):
        raise ValidationError("ledger must be a string", field="ledger")
    method, ledger = method.strip(), ledger.strip()
    if not isinstance(args, list):
        raise ValidationError("args must be a list", field="args")

    return ok(await get_service().estimate_gas(method, args, ledger))
