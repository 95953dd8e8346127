"""
Tests for the budget API endpoints (TestClient against in-memory SQLite)
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from paybudget.api.deps import get_db, current_user_id
from paybudget.main import create_app


@pytest.fixture
def app(session_factory, sample_account_id):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Client signed in as the sample account"""
    app.dependency_overrides[current_user_id] = lambda: 1
    return TestClient(app)


@pytest.fixture
def onboarded(client):
    response = client.post("/api/v1/paychecks/onboarding", json={
        "frequency": "monthly",
        "next_payday": "2024-04-01",
        "net_amount": "2000",
        "categories": [
            {"name": "Fun money", "amount": "300"},
            {"name": "Emergency fund", "amount": "200", "type": "savings"},
        ],
        "bills": [{"name": "Rent", "amount": "1200", "due_day": 1}],
    })
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").text == "ok"


def test_requires_session(app):
    response = TestClient(app).get("/api/v1/paychecks/current")
    assert response.status_code == 401


def test_onboarding_opens_first_period(client, onboarded):
    paycheck = onboarded["paycheck"]
    assert paycheck["period_start_date"] == "2024-03-01"
    assert paycheck["period_end_date"] == "2024-04-01"
    assert Decimal(paycheck["reserved_bills"]) == Decimal("1200")
    assert Decimal(paycheck["reserved_savings"]) == Decimal("500")
    assert Decimal(paycheck["spendable"]) == Decimal("300")
    assert len(onboarded["category_ids"]) == 2

    current = client.get("/api/v1/paychecks/current").json()
    assert current["paycheck_id"] == paycheck["paycheck_id"]


def test_current_without_paycheck(client):
    assert client.get("/api/v1/paychecks/current").status_code == 404
    assert client.get("/api/v1/paychecks/dashboard").status_code == 404


def test_dashboard_and_spending(client, onboarded):
    fun_money = onboarded["category_ids"][0]

    response = client.post(f"/api/v1/categories/{fun_money}/spending", json={
        "amount": "250",
        "description": "Concert",
        "transaction_date": "2024-03-10",
    })
    assert response.status_code == 200
    assert Decimal(response.json()["amount"]) == Decimal("250")

    dashboard = client.get("/api/v1/paychecks/dashboard").json()
    envelope = dashboard["envelopes"][0]
    assert envelope["name"] == "Fun money"
    assert envelope["state"] == "near-limit"
    assert envelope["remaining_display"] == "$50.00"
    assert dashboard["currency"] == "USD"
    assert dashboard["spendable_display"] == "$300.00"
    assert envelope["transactions"][0]["label"] == "Concert"
    assert dashboard["bill_grid"][0]["due_day"] == 1
    assert dashboard["bill_payments"][0]["bill_name"] == "Rent"
    assert dashboard["is_history"] is False


def test_mark_paid_and_undo(client, onboarded):
    dashboard = client.get("/api/v1/paychecks/dashboard").json()
    payment_id = dashboard["bill_payments"][0]["bill_payment_id"]

    response = client.post("/api/v1/bills/payments/pay", json={
        "bill_payment_id": payment_id,
        "actual_amount": "1150",
    })
    assert response.status_code == 200
    assert response.json()["is_paid"] is True

    current = client.get("/api/v1/paychecks/current").json()
    assert Decimal(current["reserved_bills"]) == Decimal("1150")

    response = client.post(f"/api/v1/bills/payments/{payment_id}/undo")
    assert response.json()["actual_amount"] is None
    current = client.get("/api/v1/paychecks/current").json()
    assert Decimal(current["reserved_bills"]) == Decimal("1200")


def test_bill_crud(client, onboarded):
    response = client.post("/api/v1/bills/", json={"name": "Phone", "amount": "$60", "due_day": 15})
    assert response.status_code == 200
    bill_id = response.json()["bill_id"]

    current = client.get("/api/v1/paychecks/current").json()
    assert Decimal(current["reserved_bills"]) == Decimal("1260")

    response = client.put(f"/api/v1/bills/{bill_id}", json={"amount": "70"})
    assert Decimal(response.json()["amount"]) == Decimal("70")

    response = client.delete(f"/api/v1/bills/{bill_id}")
    assert response.json() == {"bill_id": bill_id, "payments_removed": 1}
    current = client.get("/api/v1/paychecks/current").json()
    assert Decimal(current["reserved_bills"]) == Decimal("1200")


def test_category_crud(client, onboarded):
    response = client.post("/api/v1/categories/", json={"name": "Gas", "amount_per_paycheck": "100"})
    assert response.status_code == 200
    category_id = response.json()["category_id"]

    response = client.put(f"/api/v1/categories/{category_id}", json={"amount_per_paycheck": "50"})
    assert Decimal(response.json()["amount_per_paycheck"]) == Decimal("50")
    current = client.get("/api/v1/paychecks/current").json()
    assert Decimal(current["spendable"]) == Decimal("250")

    response = client.delete(f"/api/v1/categories/{category_id}")
    assert response.json() == {"category_id": category_id, "template_deleted": True}


def test_rollover_and_history(client, onboarded):
    defaults = client.get("/api/v1/paychecks/next-defaults").json()
    assert defaults["period_start"] == "2024-04-01"

    response = client.post("/api/v1/paychecks/", json={
        "pay_date": defaults["pay_date"],
        "period_start": defaults["period_start"],
        "period_end": defaults["period_end"],
        "net_amount": "2100",
    })
    assert response.status_code == 200
    new_id = response.json()["paycheck_id"]

    history = client.get("/api/v1/paychecks/").json()
    assert [p["paycheck_id"] for p in history] == [new_id, onboarded["paycheck"]["paycheck_id"]]
    assert [p["is_current"] for p in history] == [True, False]

    old = client.get(
        "/api/v1/paychecks/dashboard", params={"paycheck_id": onboarded["paycheck"]["paycheck_id"]}
    ).json()
    assert old["is_history"] is True


def test_update_current(client, onboarded):
    response = client.patch("/api/v1/paychecks/current", json={"net_amount": "2500"})
    assert response.status_code == 200
    assert Decimal(response.json()["spendable"]) == Decimal("800")


def test_initialize_twice_conflicts(client, onboarded):
    paycheck_id = onboarded["paycheck"]["paycheck_id"]
    response = client.post(f"/api/v1/paychecks/{paycheck_id}/initialize")
    assert response.status_code == 409


def test_recompute(client, onboarded):
    paycheck_id = onboarded["paycheck"]["paycheck_id"]
    response = client.post(f"/api/v1/paychecks/{paycheck_id}/recompute")
    assert response.status_code == 200
    assert Decimal(response.json()["spendable"]) == Decimal("300")

    assert client.post("/api/v1/paychecks/999/recompute").status_code == 404


def test_error_statuses(client, onboarded):
    # domain validation -> 400
    response = client.post("/api/v1/bills/", json={"name": "Bad", "amount": "10", "due_day": 40})
    assert response.status_code == 400
    # malformed amount -> 422
    response = client.post("/api/v1/bills/", json={"name": "Bad", "amount": "ten", "due_day": 4})
    assert response.status_code == 422
    # unknown ids -> 404
    assert client.delete("/api/v1/bills/payments/999").status_code == 404
    assert client.post("/api/v1/categories/999/spending", json={"amount": "5"}).status_code == 404


def test_second_onboarding_rejected(client, onboarded):
    response = client.post("/api/v1/paychecks/onboarding", json={
        "frequency": "monthly", "next_payday": "2024-05-01", "net_amount": "2000",
    })
    assert response.status_code == 400
