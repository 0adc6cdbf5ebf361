"""
transparency/service.py

SpendingService: the read/aggregation layer and the write path.

Reconstructs application views from live ledger state:
- Transaction aggregator: newest-first pages walked backward from the ledger counter.
- Department aggregator: per-department totals joined with the transaction scan.
- Overall aggregator: global totals over a full scan.
- Write path: validated submissions through the configured signer.

IMPORTANT:
- Nothing is cached between calls. Every call re-reads the chain, so two calls
  with no intervening write return identical output.
- A failing sub-item (one rating, one department, one feedback) degrades to an
  empty/zero value and is logged. A failing primary read (counter, record page,
  department list) aborts the call with ChainUnavailable.
- Write failures surface as-is; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from web3 import Web3

from .errors import RecordNotFound, TransparencyError, ValidationError
from .records import (
    EMPTY_RATING,
    DepartmentAnalytics,
    RatingSummary,
    SpendingRecord,
    TransactionView,
)
from .units import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    CurrencyConverter,
    format_percentage,
    format_rating,
    format_units,
    parse_units,
    utilization_rate,
)

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
MIN_RATING = 1
MAX_RATING = 5
RECENT_TRANSACTIONS = 10

REQUIRED_TRANSACTION_FIELDS = ("department", "projectName", "projectType", "budgetAllocated", "location")

# Contract methods the gas estimator accepts, and which positional args are token amounts.
ESTIMABLE_METHODS = {
    "spending": {"recordTransaction": (3, 4)},
    "feedback": {"submitFeedback": ()},
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _matches(value: str, needle: Optional[str]) -> bool:
    return not needle or needle.lower() in (value or "").lower()


def filter_transactions(
    views: Iterable[TransactionView],
    department: Optional[str] = None,
    project_type: Optional[str] = None,
    location: Optional[str] = None,
) -> List[TransactionView]:
    """Case-insensitive substring filters; None/empty means "no filter"."""
    return [
        v for v in views
        if _matches(v.record.department, department)
        and _matches(v.record.project_type, project_type)
        and _matches(v.record.location, location)
    ]


class SpendingService:
    """
    One service object per process, built from injected configuration.

    spending / feedback: ledger adapters (see ledgers.py) or test doubles with
    the same async interface.
    catalog: zero-arg callable returning {code: entry} where entry has
    .name and .name_ms; used only to label department ids.
    """

    def __init__(
        self,
        spending,
        feedback,
        converter: Optional[CurrencyConverter] = None,
        catalog: Optional[Callable[[], Mapping[str, Any]]] = None,
        full_scan_limit: int = 1000,
        max_concurrency: int = 10,
    ):
        self.spending = spending
        self.feedback = feedback
        self.converter = converter or CurrencyConverter("3.0", "RM")
        self.catalog = catalog or (lambda: {})
        self.full_scan_limit = full_scan_limit
        self.max_concurrency = max_concurrency

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _gather(self, coros: Iterable) -> list:
        """asyncio.gather with a concurrency cap; result order follows input order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(coro):
            async with semaphore:
                return await coro

        return list(await asyncio.gather(*(bounded(c) for c in coros)))

    async def _rating_for(self, transaction_id: int) -> RatingSummary:
        """Rating join for one record; never fails the caller."""
        try:
            avg_scaled, total = await self.feedback.rating_summary(transaction_id)
        except TransparencyError as exc:
            logger.warning("Rating lookup failed for transaction %s: %s", transaction_id, exc)
            return EMPTY_RATING
        return RatingSummary.from_scaled(avg_scaled, total)

    async def _views(self, records: Sequence[SpendingRecord]) -> List[TransactionView]:
        active = [r for r in records if r.is_active]
        ratings = await self._gather(self._rating_for(r.id) for r in active)
        return [TransactionView(r, rating) for r, rating in zip(active, ratings)]

    def _department_labels(self) -> Mapping[str, Any]:
        try:
            return self.catalog()
        except Exception as exc:
            # Labels are cosmetic: fall back to raw codes.
            logger.warning("Department catalog unavailable: %s", exc)
            return {}

    async def _full_scan(self) -> List[TransactionView]:
        return await self.list_transactions(self.full_scan_limit, 0)

    # ------------------------------------------------------------------
    # Transaction aggregator
    # ------------------------------------------------------------------
    async def list_transactions(self, limit: int = 20, offset: int = 0) -> List[TransactionView]:
        """
        Newest-first page of active transactions.

        Walks ids end..start with end = N - offset and start = max(1, end - limit + 1).
        Inactive records inside the window are dropped, not back-filled, so a page
        can hold fewer than `limit` items.
        """
        if not _is_int(limit) or not _is_int(offset) or limit < 0 or offset < 0:
            raise ValidationError("limit and offset must be non-negative integers")

        total = await self.spending.count()
        end = total - offset
        if limit == 0 or end < 1:
            return []
        start = max(1, end - limit + 1)

        records = await self._gather(self.spending.get_by_id(i) for i in range(end, start - 1, -1))
        return await self._views(records)

    async def get_transaction(self, transaction_id: int) -> Optional[TransactionView]:
        """
        Single transaction.

        Raises RecordNotFound when the id was never assigned.
        Returns None when the record exists but is soft-deleted.
        """
        if not _is_int(transaction_id) or transaction_id <= 0:
            raise RecordNotFound("Transaction", transaction_id)
        if transaction_id > await self.spending.count():
            raise RecordNotFound("Transaction", transaction_id)

        record = await self.spending.get_by_id(transaction_id)
        if not record.is_active:
            return None
        return TransactionView(record, await self._rating_for(transaction_id))

    async def search_transactions(self, query: str, limit: int = 100) -> List[TransactionView]:
        needle = (query or "").strip().lower()
        views = await self.list_transactions(limit, 0)
        if not needle:
            return views
        return [
            v for v in views
            if needle in v.record.project_name.lower()
            or needle in v.record.department.lower()
            or needle in v.record.description.lower()
            or needle in v.record.location.lower()
        ]

    async def department_transactions(self, department_id: str, limit: int = 50, offset: int = 0):
        """
        Page of one department's transactions.

        Returns (page, total_matching). Offset counts matching transactions,
        not ledger ids.
        """
        if not _is_int(limit) or not _is_int(offset) or limit < 0 or offset < 0:
            raise ValidationError("limit and offset must be non-negative integers")
        matching = [v for v in await self._full_scan() if v.department == department_id]
        return matching[offset:offset + limit], len(matching)

    async def transactions_between(self, start_ts: int, end_ts: int) -> List[TransactionView]:
        """Active transactions recorded within [start_ts, end_ts], newest first."""
        if not _is_int(start_ts) or not _is_int(end_ts) or start_ts < 0 or end_ts < start_ts:
            raise ValidationError("start and end must be timestamps with start <= end")
        ids = sorted(set(await self.spending.ids_between(start_ts, end_ts)), reverse=True)
        records = await self._gather(self.spending.get_by_id(i) for i in ids)
        return await self._views(records)

    async def transaction_rating(self, transaction_id: int) -> RatingSummary:
        avg_scaled, total = await self.feedback.rating_summary(transaction_id)
        return RatingSummary.from_scaled(avg_scaled, total)

    async def transaction_feedbacks(self, transaction_id: int) -> List[dict]:
        """Active feedback for one transaction, newest first."""
        ids = await self.feedback.feedback_ids_for_transaction(transaction_id)
        feedbacks = await self._gather(self._feedback_or_none(i) for i in ids)
        active = [f for f in feedbacks if f is not None and f.is_active]
        active.sort(key=lambda f: (f.timestamp, f.id), reverse=True)
        return [f.to_dict() for f in active]

    async def _feedback_or_none(self, feedback_id: int):
        try:
            return await self.feedback.get_by_id(feedback_id)
        except TransparencyError as exc:
            logger.warning("Feedback %s skipped: %s", feedback_id, exc)
            return None

    async def all_feedbacks(self, limit: int = 100) -> List[dict]:
        """Newest feedbacks across all transactions, labelled with their project."""
        if not _is_int(limit) or limit < 0:
            raise ValidationError("limit must be a non-negative integer")
        total = await self.feedback.count()
        if total == 0 or limit == 0:
            return []
        start = max(1, total - limit + 1)

        feedbacks = await self._gather(self._feedback_or_none(i) for i in range(total, start - 1, -1))
        active = [f for f in feedbacks if f is not None and f.is_active]

        projects: Dict[int, Optional[TransactionView]] = {}
        for tx_id in {f.transaction_id for f in active}:
            try:
                projects[tx_id] = await self.get_transaction(tx_id)
            except TransparencyError as exc:
                logger.warning("Project lookup for feedback failed (transaction %s): %s", tx_id, exc)
                projects[tx_id] = None

        active.sort(key=lambda f: (f.timestamp, f.id), reverse=True)
        result = []
        for f in active:
            project = projects.get(f.transaction_id)
            item = f.to_dict()
            item["projectName"] = project.record.project_name if project else "Unknown Project"
            item["department"] = project.record.department if project else "Unknown Department"
            result.append(item)
        return result

    # ------------------------------------------------------------------
    # Department aggregator
    # ------------------------------------------------------------------
    async def departments(self) -> List[dict]:
        """Department ids present on the ledger, labelled from the catalog."""
        labels = self._department_labels()
        result = []
        for dept_id in await self.spending.all_department_ids():
            entry = labels.get(dept_id)
            result.append({
                "id": dept_id,
                "name": entry.name if entry else dept_id,
                "nameMs": entry.name_ms if entry else None,
            })
        return result

    async def department_spending(self, department_id: str) -> dict:
        budget, spent = await self.spending.totals_by_department(department_id)
        return {
            "department": department_id,
            "totalBudget": format_units(budget),
            "totalSpent": format_units(spent),
            "utilizationRate": utilization_rate(spent, budget),
        }

    async def _department_totals(self, department_id: str):
        try:
            return await self.spending.totals_by_department(department_id)
        except TransparencyError as exc:
            logger.warning("Department %s skipped: %s", department_id, exc)
            return None

    async def _department_analytics(self, all_tx: Sequence[TransactionView]) -> List[DepartmentAnalytics]:
        dept_ids = await self.spending.all_department_ids()
        totals = await self._gather(self._department_totals(d) for d in dept_ids)
        labels = self._department_labels()

        analytics = []
        for dept_id, pair in zip(dept_ids, totals):
            if pair is None:
                continue
            budget, spent = pair
            matching = [tx for tx in all_tx if tx.department == dept_id]
            average = sum(tx.rating.average for tx in matching) / len(matching) if matching else 0.0
            entry = labels.get(dept_id)
            analytics.append(
                DepartmentAnalytics(
                    id=dept_id,
                    name=entry.name if entry else dept_id,
                    name_ms=entry.name_ms if entry else None,
                    total_budget=budget,
                    total_spent=spent,
                    project_count=len(matching),
                    average_rating=average,
                )
            )

        # sort() is stable: equal budgets keep ledger order
        analytics.sort(key=lambda a: a.total_budget, reverse=True)
        return analytics

    async def department_analytics(self) -> List[dict]:
        """Per-department totals, utilization, project count and rating, largest budget first."""
        all_tx = await self._full_scan()
        return [a.to_dict() for a in await self._department_analytics(all_tx)]

    # ------------------------------------------------------------------
    # Overall aggregator
    # ------------------------------------------------------------------
    async def _overall_stats(self, all_tx: Sequence[TransactionView]) -> dict:
        tx_count, fb_count = await asyncio.gather(self.spending.count(), self.feedback.count())
        if tx_count > self.full_scan_limit:
            logger.warning(
                "Ledger holds %s transactions; statistics cover the newest %s only",
                tx_count, self.full_scan_limit,
            )
        dept_ids = await self.spending.all_department_ids()

        total_budget = sum(tx.record.budget_allocated for tx in all_tx)
        total_spent = sum(tx.record.amount_spent for tx in all_tx)
        rated = [tx for tx in all_tx if tx.rating.total > 0]
        average_rating = sum(tx.rating.average for tx in rated) / len(rated) if rated else 0.0
        rate = utilization_rate(total_spent, total_budget)

        return {
            "transactionCount": tx_count,
            "feedbackCount": fb_count,
            "totalBudget": format_units(total_budget),
            "totalSpent": format_units(total_spent),
            "utilizationRate": rate,
            "activeProjects": sum(1 for tx in all_tx if tx.status == STATUS_IN_PROGRESS),
            "completedProjects": sum(1 for tx in all_tx if tx.status == STATUS_COMPLETED),
            "averageRating": average_rating,
            "departmentCount": len(dept_ids),
            "display": {
                "totalBudget": self.converter.format(format_units(total_budget)),
                "totalSpent": self.converter.format(format_units(total_spent)),
                "utilizationRate": format_percentage(rate),
                "averageRating": format_rating(average_rating),
            },
        }

    async def overall_stats(self) -> dict:
        """Global totals re-derived from a full ledger scan (no incremental state)."""
        return await self._overall_stats(await self._full_scan())

    async def admin_dashboard(self) -> dict:
        """Recent transactions + department analytics + overall stats, sharing one full scan."""
        recent = await self.list_transactions(RECENT_TRANSACTIONS, 0)
        all_tx = await self._full_scan()
        analytics = await self._department_analytics(all_tx)
        stats = await self._overall_stats(all_tx)
        return {
            "recentTransactions": [v.to_dict() for v in recent],
            "departmentSpending": [a.to_dict() for a in analytics],
            "stats": stats,
        }

    async def chain_status(self) -> dict:
        """Connection probe used by the health endpoint and CLI."""
        connected = await self.spending.is_connected()
        status = {"connected": connected, "transactionCount": None, "feedbackCount": None}
        if not connected:
            return status
        try:
            status["transactionCount"], status["feedbackCount"] = await asyncio.gather(
                self.spending.count(), self.feedback.count()
            )
        except TransparencyError as exc:
            logger.warning("Connected node could not serve ledger counters: %s", exc)
            status["connected"] = False
        return status

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------
    async def record_transaction(self, data: Mapping[str, Any]) -> str:
        """
        Validate and record a spending entry. Returns the confirmed tx hash.

        The ledger itself does not check amountSpent <= budgetAllocated; this does.
        """
        for name in REQUIRED_TRANSACTION_FIELDS:
            value = data.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError("All required fields must be provided", field=name)

        budget = parse_units(data["budgetAllocated"])
        spent = parse_units(data.get("amountSpent") or "0")
        if budget <= 0:
            raise ValidationError("Budget must be greater than 0", field="budgetAllocated")
        if spent > budget:
            raise ValidationError("Amount spent cannot exceed budget", field="amountSpent")

        return await self.spending.submit(
            "recordTransaction",
            str(data["department"]).strip(),
            str(data["projectName"]).strip(),
            str(data["projectType"]).strip(),
            budget,
            spent,
            str(data["location"]).strip(),
            str(data.get("description") or "").strip(),
        )

    async def submit_feedback(self, transaction_id: Any, comment: Any, rating: Any) -> str:
        """Validate and submit citizen feedback. Returns the confirmed tx hash."""
        if not _is_int(transaction_id) or transaction_id <= 0:
            raise ValidationError("Invalid transaction ID", field="transactionId")
        if not isinstance(comment, str) or not comment.strip():
            raise ValidationError("Comment is required", field="comment")
        if len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError(f"Comment must be {MAX_COMMENT_LENGTH} characters or less", field="comment")
        if not _is_int(rating) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}", field="rating")

        return await self.feedback.submit("submitFeedback", transaction_id, comment, rating)

    async def estimate_gas(self, method: str, args: Sequence[Any], ledger: str = "spending") -> dict:
        """
        Advisory cost of a write: dry-run gas limit x current gas price.

        Token amount arguments may be given as decimal strings.
        """
        methods = ESTIMABLE_METHODS.get(ledger)
        if methods is None:
            raise ValidationError(f"Unknown ledger {ledger!r}", field="ledger")
        if method not in methods:
            raise ValidationError(f"Method {method!r} cannot be estimated on {ledger}", field="method")

        call_args = list(args)
        for position in methods[method]:
            if position < len(call_args):
                call_args[position] = parse_units(call_args[position])

        target = self.spending if ledger == "spending" else self.feedback
        gas_limit = await target.estimate_gas(method, *call_args)
        gas_price = await target.gas_price()
        total = gas_limit * gas_price
        return {
            "gasLimit": str(gas_limit),
            "gasPrice": str(Web3.from_wei(gas_price, "gwei")),
            "totalCost": format_units(total),
            "totalCostWei": str(total),
        }
