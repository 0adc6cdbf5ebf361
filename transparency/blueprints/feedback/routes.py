"""
transparency/blueprints/feedback/routes.py

Citizen feedback endpoints.

Includes:
- Submit feedback (validated before any chain call)
- Feedback + rating for one transaction
- All recent feedback (admin review)

Audit:
- Every confirmed submission is written to AuditLog.
"""

from __future__ import annotations

from flask import Blueprint, request

from ...audit import log_submission
from ...errors import ValidationError
from ...utils import get_service, ok, parse_optional_int, positive_id

feedback_bp = Blueprint("feedback", __name__, url_prefix="/api/feedback")


@feedback_bp.route("/", methods=["POST"], strict_slashes=False)
async def submit_feedback():
    """POST {"transactionId": 3, "comment": "...", "rating": 4}"""
    payload = request.get_json(silent=True) or {}
    transaction_id = payload.get("transactionId")
    comment = payload.get("comment")
    rating = payload.get("rating")

    if transaction_id in (None, "") or comment in (None, "") or rating in (None, ""):
        raise ValidationError("Transaction ID, comment, and rating are required")

    # Accept numeric strings from form-style clients.
    if isinstance(transaction_id, str):
        transaction_id = parse_optional_int(transaction_id)
        if transaction_id is None:
            raise ValidationError("Invalid transaction ID", field="transactionId")
    if isinstance(rating, str):
        rating = parse_optional_int(rating)
        if rating is None:
            raise ValidationError("Rating must be between 1 and 5", field="rating")

    tx_hash = await get_service().submit_feedback(transaction_id, comment, rating)
    log_submission(
        "SUBMIT_FEEDBACK",
        "CitizenFeedback",
        tx_hash,
        entity_id=transaction_id,
        payload={"rating": rating, "comment": comment},
    )
    return ok({"txHash": tx_hash}, message="Feedback submitted successfully", txHash=tx_hash)


@feedback_bp.route("/", methods=["GET"], strict_slashes=False)
async def all_feedbacks():
    limit = parse_optional_int(request.args.get("limit"))
    limit = 100 if limit is None else limit
    if limit < 0:
        raise ValidationError("limit must be non-negative")
    return ok(await get_service().all_feedbacks(limit))


@feedback_bp.route("/transaction/<int:transaction_id>", methods=["GET"])
async def transaction_feedback(transaction_id: int):
    positive_id(transaction_id)
    service = get_service()
    feedbacks = await service.transaction_feedbacks(transaction_id)
    rating = await service.transaction_rating(transaction_id)
    return ok({"feedbacks": feedbacks, "rating": rating.to_dict()})


@feedback_bp.route("/rating/<int:transaction_id>", methods=["GET"])
async def transaction_rating(transaction_id: int):
    positive_id(transaction_id)
    rating = await get_service().transaction_rating(transaction_id)
    return ok(rating.to_dict())
