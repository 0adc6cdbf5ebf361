"""
transparency/records.py

Typed ledger records and the read-models built from them.

Raw contract tuples are validated once, at the adapter boundary
(`from_chain`). Anything malformed is rejected there as ChainUnavailable,
so aggregation code only ever sees well-typed records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from .errors import ChainUnavailable
from .units import format_units, status_for, utilization_rate


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _expect(raw: Sequence, types: Sequence[type], operation: str) -> None:
    """Check arity and field types of a contract tuple."""
    if not isinstance(raw, (tuple, list)) or len(raw) != len(types):
        raise ChainUnavailable(operation, f"malformed response {raw!r}")
    for idx, (value, expected) in enumerate(zip(raw, types)):
        # bool is an int subclass; only accept it where a bool is expected
        if expected is int and isinstance(value, bool):
            raise ChainUnavailable(operation, f"field {idx} is not an integer")
        if not isinstance(value, expected):
            raise ChainUnavailable(operation, f"field {idx} is not {expected.__name__}")
        if expected is int and value < 0:
            raise ChainUnavailable(operation, f"field {idx} is negative")


# ---------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class SpendingRecord:
    """One GovernmentSpending entry. Amounts are in base units."""

    id: int
    department: str
    project_name: str
    project_type: str
    budget_allocated: int
    amount_spent: int
    location: str
    description: str
    timestamp: int
    recorded_by: str
    is_active: bool

    _FIELD_TYPES = (int, str, str, str, int, int, str, str, int, str, bool)

    @classmethod
    def from_chain(cls, raw: Sequence) -> "SpendingRecord":
        _expect(raw, cls._FIELD_TYPES, "getTransaction")
        record = cls(*raw)
        if record.id <= 0:
            raise ChainUnavailable("getTransaction", f"invalid record id {record.id}")
        return record


@dataclass(frozen=True)
class FeedbackRecord:
    """One CitizenFeedback entry."""

    id: int
    transaction_id: int
    citizen: str
    comment: str
    rating: int
    timestamp: int
    is_active: bool

    _FIELD_TYPES = (int, int, str, str, int, int, bool)

    @classmethod
    def from_chain(cls, raw: Sequence) -> "FeedbackRecord":
        _expect(raw, cls._FIELD_TYPES, "getFeedback")
        return cls(*raw)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "citizen": self.citizen,
            "comment": self.comment,
            "rating": self.rating,
            "timestamp": _iso(self.timestamp),
            "isActive": self.is_active,
        }


# ---------------------------------------------------------------------
# Read-models
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RatingSummary:
    average: float = 0.0
    total: int = 0

    @classmethod
    def from_scaled(cls, avg_scaled: int, total: int) -> "RatingSummary":
        """The feedback ledger reports the average multiplied by 100."""
        return cls(average=avg_scaled / 100, total=total)

    def to_dict(self) -> dict:
        return {"average": self.average, "total": self.total}


EMPTY_RATING = RatingSummary()


@dataclass(frozen=True)
class TransactionView:
    """A spending record plus the values derived for display."""

    record: SpendingRecord
    rating: RatingSummary = field(default=EMPTY_RATING)

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def department(self) -> str:
        return self.record.department

    @property
    def utilization_rate(self) -> float:
        return utilization_rate(self.record.amount_spent, self.record.budget_allocated)

    @property
    def status(self) -> str:
        return status_for(self.utilization_rate)

    def to_dict(self) -> dict:
        r = self.record
        return {
            "id": r.id,
            "department": r.department,
            "projectName": r.project_name,
            "projectType": r.project_type,
            "budgetAllocated": format_units(r.budget_allocated),
            "amountSpent": format_units(r.amount_spent),
            "location": r.location,
            "description": r.description,
            "timestamp": _iso(r.timestamp),
            "recordedBy": r.recorded_by,
            "isActive": r.is_active,
            "utilizationRate": self.utilization_rate,
            "status": self.status,
            "rating": self.rating.to_dict(),
        }


@dataclass(frozen=True)
class DepartmentAnalytics:
    id: str
    name: str
    name_ms: Optional[str]
    total_budget: int
    total_spent: int
    project_count: int
    average_rating: float

    @property
    def utilization_rate(self) -> float:
        return utilization_rate(self.total_spent, self.total_budget)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "nameMs": self.name_ms,
            "totalBudget": format_units(self.total_budget),
            "totalSpent": format_units(self.total_spent),
            "utilizationRate": self.utilization_rate,
            "projectCount": self.project_count,
            "averageRating": self.average_rating,
        }
