"""
Integration tests for the /subscriptions endpoints and the full
create -> run out -> buy -> create flow.
"""
from jobmail.core import integrations
from jobmail.core.integrations import get_payment_gateway
from jobmail.core.security import create_access_token
from jobmail.main import app


def _buy(client, headers, gateway, plan="basic"):
    order = client.post("/subscriptions/orders", json={"plan": plan}, headers=headers).json()["order"]
    payment_id = f"pay_{order['id']}"
    return {
        "razorpay_order_id": order["id"],
        "razorpay_payment_id": payment_id,
        "razorpay_signature": gateway.sign(order["id"], payment_id),
    }


def test_create_order(client, auth_headers, test_user):
    response = client.post("/subscriptions/orders", json={"plan": "basic"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["plan_details"] == {"credits": 100, "amount": 300, "currency": "INR"}
    assert data["order"]["amount"] == 30000
    assert data["order"]["notes"]["account_id"] == str(test_user.id)


def test_create_order_invalid_plan(client, auth_headers):
    response = client.post("/subscriptions/orders", json={"plan": "gold"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_plan"


def test_verify_payment(client, auth_headers, gateway):
    confirmation = _buy(client, auth_headers, gateway, "premium")

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["credits"] == 302
    assert data["payment"]["plan"] == "premium"
    assert data["subscription"]["status"] == "active"


def test_verify_payment_twice(client, auth_headers, gateway):
    confirmation = _buy(client, auth_headers, gateway)
    client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "already_processed"
    assert response.json()["credits"] == 102
    assert len(client.get("/subscriptions/payments", headers=auth_headers).json()["payments"]) == 1


def test_verify_payment_bad_signature(client, auth_headers, gateway):
    confirmation = _buy(client, auth_headers, gateway)
    confirmation["razorpay_signature"] = "0" * 64

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_signature"
    assert client.get("/auth/profile", headers=auth_headers).json()["credits"] == 2


def test_verify_payment_gateway_down(client, auth_headers, gateway):
    confirmation = _buy(client, auth_headers, gateway)
    gateway.fail_fetch = True

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"
    assert client.get("/auth/profile", headers=auth_headers).json()["credits"] == 2


def test_replayed_confirmation_from_another_account_is_400(client, auth_headers, gateway, make_user):
    confirmation = _buy(client, auth_headers, gateway)
    client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)
    other = make_user(email="other@example.com", credits=0)
    other_headers = {"Authorization": f"Bearer {create_access_token({'sub': other.email})}"}

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=other_headers)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_signature"


def test_verify_payment_malformed_order_is_502(client, auth_headers, gateway):
    confirmation = _buy(client, auth_headers, gateway)
    gateway.orders[confirmation["razorpay_order_id"]]["notes"] = {}

    response = client.post("/subscriptions/verify-payment", json=confirmation, headers=auth_headers)

    assert response.status_code == 502
    assert "Retry-After" not in response.headers


def test_payments_not_configured(client, auth_headers, monkeypatch):
    app.dependency_overrides.pop(get_payment_gateway)
    monkeypatch.setattr(integrations.config, "RAZORPAY_KEY_ID", "")
    integrations._build_payment_gateway.cache_clear()
    try:
        response = client.post("/subscriptions/orders", json={"plan": "basic"}, headers=auth_headers)
    finally:
        integrations._build_payment_gateway.cache_clear()

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "payments_not_configured"


def test_subscription_details_and_cancel(client, auth_headers, gateway):
    empty = client.get("/subscriptions/details", headers=auth_headers).json()
    assert empty == {"subscription": None, "credits": 2}

    client.post("/subscriptions/verify-payment", json=_buy(client, auth_headers, gateway), headers=auth_headers)
    details = client.get("/subscriptions/details", headers=auth_headers).json()
    assert details["subscription"]["plan"] == "basic"
    assert details["subscription"]["status"] == "active"
    assert details["credits"] == 102

    cancelled = client.post("/subscriptions/cancel", headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.post("/subscriptions/cancel", headers=auth_headers)
    assert again.status_code == 400


def test_full_credit_flow(client, gateway, mirror):
    """Register, spend both free credits, get refused, buy basic, keep going."""
    registered = client.post(
        "/auth/register",
        json={"full_name": "Flow User", "email": "flow@example.com", "password": "secret123"},
    )
    assert registered.json()["credits"] == 2

    token = client.post(
        "/auth/login", data={"username": "flow@example.com", "password": "secret123"}
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}
    job = {"company_name": "Initech", "job_title": "Engineer"}

    assert client.post("/applications", json=job, headers=headers).json()["remaining_credits"] == 1
    assert client.post("/applications", json=job, headers=headers).json()["remaining_credits"] == 0
    assert client.post("/applications", json=job, headers=headers).status_code == 403

    verified = client.post("/subscriptions/verify-payment", json=_buy(client, headers, gateway), headers=headers)
    assert verified.json()["credits"] == 100
    assert verified.json()["subscription"]["status"] == "active"

    created = client.post("/applications", json=job, headers=headers)
    assert created.status_code == 201
    assert created.json()["remaining_credits"] == 99
    assert len(mirror.records) == 3
