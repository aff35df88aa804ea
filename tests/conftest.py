import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import itertools
import pytest
from typing import Generator, Dict, Any, Optional
from fastapi.testclient import TestClient

from tourbooking.app import app as fastapi_app
from tourbooking.payments import ledger
from tourbooking.payments.repository import DuplicateActivePayment
from tourbooking.utils.security import require_user, require_admin

TEST_USER: Dict[str, Any] = {
    "id": "user-1",
    "email": "traveler@example.com",
    "role": "user",
    "token": "fake-token",
}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)


class FakeStore:
    """
    Double en mémoire des tables bookings/payments/tours.
    Reproduit les garanties des RPC: un seul paiement actif par réservation,
    confirmation gardée sur status <> 'success'.
    """

    def __init__(self):
        self.bookings: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.tours: Dict[str, Dict[str, Any]] = {}
        self._seq = itertools.count(1)
        self.calls: Dict[str, int] = {}

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    # --- seed helpers ---
    def add_tour(self, tour_id: str, price: Any, title: str = "Ha Long Bay Cruise") -> Dict[str, Any]:
        self.tours[tour_id] = {"id": tour_id, "title": title, "price": price}
        return self.tours[tour_id]

    def add_booking(self, booking_id: str, user_id: str = "user-1", tour_id: str = "tour-1", passengers: int = 1, **extra) -> Dict[str, Any]:
        self.bookings[booking_id] = {
            "id": booking_id,
            "user_id": user_id,
            "tour_id": tour_id,
            "passengers": [{"name": f"P{i}", "age": 30, "type": "adult"} for i in range(passengers)],
            "status": ledger.BOOKING_PENDING,
            "payment_status": ledger.BOOKING_UNPAID,
            "latest_payment_id": None,
            "is_deleted": False,
            **extra,
        }
        return self.bookings[booking_id]

    def add_payment(self, booking_id: str, method: str = "VNPay", amount: int = 10000, status: str = "pending",
                    transaction_id: Optional[str] = None, payment_id: Optional[str] = None) -> Dict[str, Any]:
        seq = next(self._seq)
        pid = payment_id or f"pay-{seq}"
        self.payments[pid] = {
            "id": pid,
            "booking_id": booking_id,
            "method": method,
            "amount": amount,
            "status": status,
            "transaction_id": transaction_id,
            "created_at": seq,
        }
        return self.payments[pid]

    def payments_for(self, booking_id: str):
        return [p for p in self.payments.values() if p["booking_id"] == booking_id]

    # --- repository API ---
    def get_booking(self, booking_id):
        self._count("get_booking")
        return dict(self.bookings[booking_id]) if booking_id in self.bookings else None

    def get_tour(self, tour_id):
        return dict(self.tours[tour_id]) if tour_id in self.tours else None

    def get_payment(self, payment_id):
        return dict(self.payments[payment_id]) if payment_id in self.payments else None

    def get_payment_by_transaction_id(self, transaction_id):
        rows = [p for p in self.payments.values() if p["transaction_id"] == transaction_id]
        return dict(max(rows, key=lambda p: p["created_at"])) if rows else None

    def find_active_payment(self, booking_id):
        rows = [p for p in self.payments_for(booking_id) if p["status"] in ledger.ACTIVE_PAYMENT_STATUSES]
        return dict(max(rows, key=lambda p: p["created_at"])) if rows else None

    def get_latest_payment(self, booking_id):
        rows = self.payments_for(booking_id)
        return dict(max(rows, key=lambda p: p["created_at"])) if rows else None

    def list_payments(self, limit=100):
        return sorted((dict(p) for p in self.payments.values()), key=lambda p: p["created_at"], reverse=True)[:limit]

    def update_payment(self, payment_id, patch):
        self._count("update_payment")
        if payment_id not in self.payments:
            return None
        self.payments[payment_id].update(patch)
        return dict(self.payments[payment_id])

    def update_booking(self, booking_id, patch):
        self._count("update_booking")
        if booking_id not in self.bookings:
            return None
        self.bookings[booking_id].update(patch)
        return dict(self.bookings[booking_id])

    def open_booking_payment(self, *, booking_id, method, amount):
        self._count("open_booking_payment")
        if self.find_active_payment(booking_id):
            raise DuplicateActivePayment(booking_id)
        payment = self.add_payment(booking_id, method=method, amount=amount, status=ledger.PAYMENT_PENDING)
        self.bookings[booking_id]["latest_payment_id"] = payment["id"]
        return dict(payment)

    def confirm_booking_payment(self, *, payment_id, transaction_id):
        self._count("confirm_booking_payment")
        payment = self.payments[payment_id]
        if payment["status"] == ledger.PAYMENT_SUCCESS:
            return None
        payment.update(ledger.confirmed_payment_patch(transaction_id))
        booking = self.bookings[payment["booking_id"]]
        booking.update(ledger.confirmed_booking_patch())
        booking["latest_payment_id"] = payment_id
        return dict(payment)


REPOSITORY_FUNCTIONS = (
    "get_booking",
    "get_tour",
    "get_payment",
    "get_payment_by_transaction_id",
    "find_active_payment",
    "get_latest_payment",
    "list_payments",
    "update_payment",
    "update_booking",
    "open_booking_payment",
    "confirm_booking_payment",
)


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    """Remplace toutes les fonctions de tourbooking.payments.repository par le double en mémoire."""
    fake = FakeStore()
    for name in REPOSITORY_FUNCTIONS:
        monkeypatch.setattr(f"tourbooking.payments.repository.{name}", getattr(fake, name))
    return fake


@pytest.fixture(autouse=True)
def payment_settings(monkeypatch):
    """Secrets de test pour VNPay/Stripe (aucun appel réseau)."""
    monkeypatch.setattr("tourbooking.config.VNPAY_TMNCODE", "TESTTMN1")
    monkeypatch.setattr("tourbooking.config.VNPAY_HASH_SECRET", "vnpay-test-secret")
    monkeypatch.setattr("tourbooking.config.VNPAY_URL", "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html")
    monkeypatch.setattr("tourbooking.config.VNPAY_RETURN_URL", "https://api.test/api/v1/payments/vnpay/return")
    monkeypatch.setattr("tourbooking.config.STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr("tourbooking.config.STRIPE_WEBHOOK_SECRET", "whsec_test_123")
    monkeypatch.setattr("tourbooking.config.FRONTEND_URL", "https://app.test")


@pytest.fixture(autouse=True)
def _no_real_supabase(monkeypatch):
    """Toute requête non doublée doit échouer bruyamment plutôt que d'aller sur le réseau."""
    def _refuse():
        raise RuntimeError("Supabase non disponible en tests")
    monkeypatch.setattr("tourbooking.infra.supabase_client.get_service_supabase", _refuse)


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: dict(TEST_USER)
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)


@pytest.fixture
def authenticated_admin_client(app, client):
    def _override_require_admin():
        return {"id": "admin-1", "role": "admin", "email": "admin@example.com"}
    app.dependency_overrides[require_admin] = _override_require_admin
    yield client
    app.dependency_overrides.pop(require_admin, None)
