import json

from conftest import make_feedback, make_record
from transparency.models import AuditLog, Department
from transparency.seed import DEFAULT_DEPARTMENTS, department_catalog, seed_departments


def test_health_reports_chain_status(client, spending):
    spending.add(make_record(1))
    res = client.get("/api/health")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["connected"] is True
    assert data["transactionCount"] == 1
    assert data["network"] == "development"


def test_list_transactions_envelope(client, spending):
    for i in range(1, 6):
        spending.add(make_record(i))

    res = client.get("/api/transactions?limit=2&offset=1")

    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert [t["id"] for t in body["data"]] == [4, 3]
    assert body["pagination"] == {"limit": 2, "offset": 1, "total": 2}


def test_list_transactions_filters(client, spending):
    spending.add(make_record(1, department="MOH", location="Ipoh"))
    spending.add(make_record(2, department="MOE", location="Ipoh"))
    spending.add(make_record(3, department="MOH", location="Sabah"))

    res = client.get("/api/transactions?department=moh&location=ipoh")

    assert [t["id"] for t in res.get_json()["data"]] == [1]


def test_negative_paging_is_bad_request(client):
    res = client.get("/api/transactions?limit=-1")
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_single_transaction_status_codes(client, spending):
    spending.add(make_record(1))
    spending.add(make_record(2, active=False))

    assert client.get("/api/transactions/1").status_code == 200
    assert client.get("/api/transactions/2").status_code == 410
    assert client.get("/api/transactions/3").status_code == 404
    assert client.get("/api/transactions/0").status_code == 400


def test_unreachable_chain_is_service_unavailable(client, spending):
    spending.unavailable = True
    res = client.get("/api/transactions")
    assert res.status_code == 503
    assert res.get_json()["error"].startswith("Chain unavailable")


def test_search_and_range(client, spending):
    spending.add(make_record(1, name="Hospital", ts=100))
    spending.add(make_record(2, name="School", ts=200))

    res = client.get("/api/transactions/search/HOSP")
    body = res.get_json()
    assert body["query"] == "hosp"
    assert [t["id"] for t in body["data"]] == [1]

    res = client.get("/api/transactions/range?start=150&end=250")
    assert [t["id"] for t in res.get_json()["data"]] == [2]

    assert client.get("/api/transactions/range?start=1").status_code == 400


def test_stats_endpoints(client, spending, feedback):
    spending.departments = ["MOH"]
    spending.add(make_record(1, budget="100", spent="95"))
    feedback.feedbacks = {1: make_feedback(1, 1, 5)}

    summary = client.get("/api/transactions/stats/summary").get_json()["data"]
    assert summary["completedProjects"] == 1
    assert summary["averageRating"] == 5.0

    by_dept = client.get("/api/transactions/stats/by-department").get_json()["data"]
    assert by_dept[0]["id"] == "MOH"
    assert by_dept == client.get("/api/departments/analytics").get_json()["data"]


def test_departments_endpoints(client, spending):
    spending.departments = ["MOH", "MOT"]
    spending.add(make_record(1, department="MOH", budget="40", spent="10"))
    spending.add(make_record(2, department="MOT"))

    listing = client.get("/api/departments").get_json()["data"]
    assert listing[0] == {"id": "MOH", "name": "Ministry of Health", "nameMs": "Kementerian Kesihatan"}
    assert listing[1]["name"] == "MOT"

    spending_body = client.get("/api/departments/MOH/spending").get_json()["data"]
    assert spending_body["utilizationRate"] == 25.0

    res = client.get("/api/departments/MOH/transactions").get_json()
    assert [t["id"] for t in res["data"]] == [1]
    assert res["pagination"]["total"] == 1


def test_estimate_gas_endpoint(client):
    res = client.post("/api/transactions/estimate-gas", json={"method": "submitFeedback", "args": [1, "ok", 5], "ledger": "feedback"})
    assert res.status_code == 200
    assert res.get_json()["data"]["gasLimit"] == "80000"

    res = client.post("/api/transactions/estimate-gas", json={"method": "selfdestruct"})
    assert res.status_code == 400


def test_estimate_gas_rejects_malformed_bodies(client):
    bodies = [
        {"method": 5, "args": []},
        {"method": "submitFeedback", "ledger": ["feedback"]},
        {"method": "submitFeedback", "args": "1"},
        ["submitFeedback"],
    ]
    for body in bodies:
        res = client.post("/api/transactions/estimate-gas", json=body)
        assert res.status_code == 400, body
        assert res.get_json()["success"] is False


# ---------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------
def test_feedback_validation_happens_before_chain(client, feedback):
    res = client.post("/api/feedback", json={"transactionId": 1, "comment": "great", "rating": 6})
    assert res.status_code == 400
    assert res.get_json()["field"] == "rating"

    res = client.post("/api/feedback", json={"transactionId": 1, "comment": "", "rating": 3})
    assert res.status_code == 400
    assert feedback.submitted == []
    assert AuditLog.query.count() == 0


def test_feedback_submission_is_audited(client, feedback):
    res = client.post("/api/feedback", json={"transactionId": "3", "comment": "Finished on time", "rating": "5"})

    assert res.status_code == 200
    body = res.get_json()
    assert body["txHash"].startswith("0x")
    assert feedback.submitted == [("submitFeedback", (3, "Finished on time", 5))]

    entry = AuditLog.query.one()
    assert entry.action == "SUBMIT_FEEDBACK"
    assert entry.entity_id == 3
    assert entry.tx_hash == body["txHash"]
    assert json.loads(entry.payload)["rating"] == "5"


def test_rejected_feedback_is_unprocessable(client, feedback):
    feedback.reject_writes = True
    res = client.post("/api/feedback", json={"transactionId": 1, "comment": "ok", "rating": 3})
    assert res.status_code == 422
    assert AuditLog.query.count() == 0


def test_transaction_feedback_and_rating(client, feedback):
    feedback.feedbacks = {1: make_feedback(1, 7, 4, ts=10), 2: make_feedback(2, 7, 5, ts=20)}

    data = client.get("/api/feedback/transaction/7").get_json()["data"]
    assert [f["id"] for f in data["feedbacks"]] == [2, 1]
    assert data["rating"] == {"average": 4.5, "total": 2}

    assert client.get("/api/feedback/rating/7").get_json()["data"]["total"] == 2


def test_all_feedback_listing(client, spending, feedback):
    spending.add(make_record(1, name="Clinic"))
    feedback.feedbacks = {1: make_feedback(1, 1, 4)}

    data = client.get("/api/feedback").get_json()["data"]
    assert data[0]["projectName"] == "Clinic"


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------
TX_BODY = {
    "department": "MOH",
    "projectName": "Clinic",
    "projectType": "Healthcare",
    "budgetAllocated": "10",
    "amountSpent": "2",
    "location": "Ipoh",
}


def test_admin_requires_token(client, spending):
    assert client.post("/api/admin/transaction", json=TX_BODY).status_code == 403
    assert client.get("/api/admin/dashboard", headers={"X-Admin-Token": "wrong"}).status_code == 403
    assert spending.submitted == []


def test_admin_records_transaction(client, spending, admin_headers):
    res = client.post("/api/admin/transaction", json=TX_BODY, headers=admin_headers)

    assert res.status_code == 201
    assert spending.submitted[0][1][3] == 10 * 10 ** 18
    assert AuditLog.query.filter_by(action="RECORD_TRANSACTION").count() == 1


def test_admin_rejects_overspend(client, spending, admin_headers):
    res = client.post("/api/admin/transaction", json=dict(TX_BODY, amountSpent="11"), headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["field"] == "amountSpent"
    assert spending.submitted == []


def test_admin_accepts_bearer_token(client, spending):
    spending.add(make_record(1))
    res = client.get("/api/admin/dashboard", headers={"Authorization": "Bearer test-admin-token"})
    assert res.status_code == 200
    assert set(res.get_json()["data"]) == {"recentTransactions", "departmentSpending", "stats"}


def test_unknown_route_is_json(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["success"] is False


# ---------------------------------------------------------------------
# Department catalog
# ---------------------------------------------------------------------
def test_seed_departments_is_idempotent(app):
    assert seed_departments() == len(DEFAULT_DEPARTMENTS)
    assert seed_departments() == 0
    assert Department.query.count() == len(DEFAULT_DEPARTMENTS)

    catalog = department_catalog()
    assert list(catalog)[0] == "MOH"
    assert catalog["MOE"].name_ms == "Kementerian Pendidikan"


# ---------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------
def test_cli_seed_and_chain_status(app, spending):
    spending.add(make_record(1))
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-departments"])
    assert "8 new" in result.output

    result = runner.invoke(args=["chain-status"])
    assert result.exit_code == 0
    assert "Transactions: 1" in result.output


def test_cli_watch_stats_bounded(app, spending):
    spending.add(make_record(1, budget="10", spent="5"))
    result = app.test_cli_runner().invoke(args=["watch-stats", "--interval", "0.01", "--cycles", "2"])
    assert result.exit_code == 0
    assert result.output.count("utilization=50.0%") == 2
