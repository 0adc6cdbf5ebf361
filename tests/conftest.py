from types import SimpleNamespace

import pytest

from transparency.errors import ChainUnavailable, RecordNotFound, TransactionRejected
from transparency.records import FeedbackRecord, SpendingRecord
from transparency.service import SpendingService
from transparency.units import CurrencyConverter, parse_units

BASE_TS = 1_700_000_000
RECORDER = "0x00000000000000000000000000000000000000aa"


def make_record(id, department="MOH", budget="100", spent="0", active=True, ts=None,
                name=None, project_type="Infrastructure", location="Kuala Lumpur", description=""):
    return SpendingRecord(
        id=id,
        department=department,
        project_name=name or f"Project {id}",
        project_type=project_type,
        budget_allocated=parse_units(budget),
        amount_spent=parse_units(spent),
        location=location,
        description=description,
        timestamp=ts if ts is not None else BASE_TS + id,
        recorded_by=RECORDER,
        is_active=active,
    )


def make_feedback(id, transaction_id, rating, active=True, ts=None, comment="ok"):
    return FeedbackRecord(
        id=id,
        transaction_id=transaction_id,
        citizen=f"0x{id:040x}",
        comment=comment,
        rating=rating,
        timestamp=ts if ts is not None else BASE_TS + 1000 + id,
        is_active=active,
    )


class FakeSpendingLedger:
    """In-memory GovernmentSpending with the adapter's async interface."""

    def __init__(self, records=(), departments=None):
        self.records = {r.id: r for r in records}
        self.departments = list(departments) if departments is not None else sorted({r.department for r in records})
        self.failing_departments = set()
        self.unavailable = False
        self.connected = True
        self.reject_writes = False
        self.submitted = []
        self.reads = 0

    def add(self, record):
        self.records[record.id] = record

    def _check(self, operation):
        self.reads += 1
        if self.unavailable:
            raise ChainUnavailable(operation, "connection refused")

    async def count(self):
        self._check("transactionCount")
        return len(self.records)

    async def get_by_id(self, record_id):
        self._check("getTransaction")
        if record_id not in self.records:
            raise RecordNotFound("Transaction", record_id)
        return self.records[record_id]

    async def all_department_ids(self):
        self._check("getAllDepartments")
        return list(self.departments)

    async def totals_by_department(self, department_id):
        self._check("getTotalSpendingByDepartment")
        if department_id in self.failing_departments:
            raise ChainUnavailable("getTotalSpendingByDepartment", "timeout")
        rows = [r for r in self.records.values() if r.department == department_id and r.is_active]
        return sum(r.budget_allocated for r in rows), sum(r.amount_spent for r in rows)

    async def ids_between(self, start_ts, end_ts):
        self._check("getTransactionsByDateRange")
        return [r.id for r in self.records.values() if start_ts <= r.timestamp <= end_ts]

    async def submit(self, fn_name, *args):
        if self.reject_writes:
            raise TransactionRejected(fn_name, "execution reverted")
        self.submitted.append((fn_name, args))
        return "0x" + f"{len(self.submitted):064x}"

    async def estimate_gas(self, fn_name, *args):
        self.submitted_estimate = (fn_name, args)
        return 120_000

    async def gas_price(self):
        return 2_000_000_000

    async def is_connected(self):
        return self.connected


class FakeFeedbackLedger:
    """In-memory CitizenFeedback; ratings are averaged x100 like the contract."""

    def __init__(self, feedbacks=()):
        self.feedbacks = {f.id: f for f in feedbacks}
        self.failing_ratings = set()
        self.failing_feedbacks = set()
        self.unavailable = False
        self.connected = True
        self.reject_writes = False
        self.submitted = []

    def _check(self, operation):
        if self.unavailable:
            raise ChainUnavailable(operation, "connection refused")

    async def count(self):
        self._check("feedbackCount")
        return len(self.feedbacks)

    async def feedback_ids_for_transaction(self, transaction_id):
        self._check("getTransactionFeedbacks")
        return [f.id for f in self.feedbacks.values() if f.transaction_id == transaction_id]

    async def get_by_id(self, feedback_id):
        self._check("getFeedback")
        if feedback_id in self.failing_feedbacks:
            raise ChainUnavailable("getFeedback", "timeout")
        if feedback_id not in self.feedbacks:
            raise RecordNotFound("Feedback", feedback_id)
        return self.feedbacks[feedback_id]

    async def rating_summary(self, transaction_id):
        self._check("getTransactionRating")
        if transaction_id in self.failing_ratings:
            raise ChainUnavailable("getTransactionRating", "timeout")
        rows = [f for f in self.feedbacks.values() if f.transaction_id == transaction_id and f.is_active]
        if not rows:
            return 0, 0
        return sum(f.rating for f in rows) * 100 // len(rows), len(rows)

    async def submit(self, fn_name, *args):
        if self.reject_writes:
            raise TransactionRejected(fn_name, "user rejected transaction")
        self.submitted.append((fn_name, args))
        return "0x" + f"{len(self.submitted) + 100:064x}"

    async def estimate_gas(self, fn_name, *args):
        return 80_000

    async def gas_price(self):
        return 1_500_000_000

    async def is_connected(self):
        return self.connected


CATALOG = {
    "MOH": SimpleNamespace(name="Ministry of Health", name_ms="Kementerian Kesihatan"),
    "MOE": SimpleNamespace(name="Ministry of Education", name_ms="Kementerian Pendidikan"),
}


@pytest.fixture
def spending():
    return FakeSpendingLedger()


@pytest.fixture
def feedback():
    return FakeFeedbackLedger()


@pytest.fixture
def service(spending, feedback):
    return SpendingService(
        spending,
        feedback,
        converter=CurrencyConverter("3.0", "RM"),
        catalog=lambda: CATALOG,
        full_scan_limit=1000,
    )


@pytest.fixture
def app(service):
    from transparency import create_app
    from transparency.extensions import db

    app = create_app("config.TestConfig", service=service)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": "test-admin-token"}
