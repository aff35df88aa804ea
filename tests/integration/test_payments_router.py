from types import SimpleNamespace
from urllib.parse import parse_qsl, urlsplit

import pytest
import stripe

from tourbooking.utils.security import require_user


@pytest.fixture
def booking(store):
    store.add_tour("tour-1", price=100.00, title="Sapa Trek")
    return store.add_booking("B1", user_id="user-1", tour_id="tour-1", passengers=3)


def test_checkout_vnpay_returns_payment_and_url(client, store, booking):
    r = client.post(
        "/api/v1/payments/checkout",
        json={"booking_id": "B1", "method": "VNPay"},
        headers={"X-Forwarded-For": "203.0.113.5"},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["payment"]["amount"] == 30000
    assert data["payment"]["status"] == "pending"
    query = dict(parse_qsl(urlsplit(data["pay_url"]).query))
    assert query["vnp_Amount"] == "3000000"
    assert query["vnp_TxnRef"] == data["payment"]["id"]
    assert query["vnp_SecureHash"]


def test_checkout_stripe(client, store, booking, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session, "create",
        lambda **kw: SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1"),
    )
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B1", "method": "Stripe"})
    assert r.status_code == 200, r.text
    assert r.json()["pay_url"] == "https://checkout.stripe.com/c/pay/cs_test_1"


def test_checkout_stripe_provider_error_is_502(client, store, booking, monkeypatch):
    def boom(**kw):
        raise stripe.StripeError("No API key provided")
    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B1", "method": "Stripe"})
    assert r.status_code == 502


def test_checkout_other_owner_401(client, store):
    store.add_tour("tour-1", price=10)
    store.add_booking("B2", user_id="someone-else")
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B2", "method": "VNPay"})
    assert r.status_code == 401
    assert "detail" in r.json()


def test_checkout_unknown_booking_404(client, store):
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "missing", "method": "VNPay"})
    assert r.status_code == 404


def test_checkout_unsupported_method_400(client, store, booking):
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B1", "method": "Momo"})
    assert r.status_code == 400
    assert "Momo" in r.json()["detail"]


def test_checkout_validation_422(client, store):
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B1"})
    assert r.status_code == 422


def test_checkout_requires_authentication(app, client, store, booking):
    app.dependency_overrides.pop(require_user, None)
    r = client.post("/api/v1/payments/checkout", json={"booking_id": "B1", "method": "VNPay"})
    assert r.status_code == 401


def test_confirm_then_read_back(client, store, booking):
    payment = store.add_payment("B1", method="Stripe", amount=30000)
    r = client.post("/api/v1/payments/confirm", json={"payment_id": payment["id"], "transaction_id": "pi_1"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "success"

    again = client.post("/api/v1/payments/confirm", json={"payment_id": payment["id"], "transaction_id": "pi_2"})
    assert again.status_code == 200
    assert again.json()["transaction_id"] == "pi_1"

    assert client.get(f"/api/v1/payments/{payment['id']}").json()["status"] == "success"
    assert client.get("/api/v1/payments/by-booking/B1").json()["id"] == payment["id"]


def test_confirm_unknown_transaction_404(client, store):
    r = client.post("/api/v1/payments/confirm", json={"transaction_id": "pi_zzz"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Paiement introuvable pour la transaction pi_zzz"


def test_admin_list_requires_admin(client, store):
    r = client.get("/api/v1/payments", headers={"Authorization": "Bearer fake-token"})
    # require_admin non surchargé: le token factice ne passe pas l'auth
    assert r.status_code in (401, 403)


def test_admin_list(authenticated_admin_client, store, booking):
    store.add_payment("B1", status="failed")
    latest = store.add_payment("B1", status="pending")
    r = authenticated_admin_client.get("/api/v1/payments?limit=10")
    assert r.status_code == 200
    payments = r.json()["payments"]
    assert [p["id"] for p in payments][0] == latest["id"]
    assert len(payments) == 2


def test_health_endpoints(client, monkeypatch):
    assert client.get("/health").json() == {"ok": True}
    monkeypatch.setattr("tourbooking.health.router.SUPABASE_URL", "")
    r = client.get("/health/ready")
    assert r.status_code == 503
    assert r.json()["rate_limit"]["enabled"] is False


def test_missing_gateway_settings_are_reported(monkeypatch):
    from tourbooking.app_setup.lifespan import missing_gateway_settings
    assert missing_gateway_settings() == []
    monkeypatch.setattr("tourbooking.config.STRIPE_WEBHOOK_SECRET", "")
    monkeypatch.setattr("tourbooking.config.VNPAY_HASH_SECRET", "")
    assert missing_gateway_settings() == ["VNPAY_HASH_SECRET", "STRIPE_WEBHOOK_SECRET"]
