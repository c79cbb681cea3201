"""Tests for the product catalog, Stripe payments and entitlement."""

import pytest
import stripe

from conftest import auth_header
from simplehire.models.database import PaymentDB, UserDataDB
from simplehire.services.catalog import grant_products, products_granted_by
from simplehire.services.payment_service import payment_service


class FakeGateway:
    """Stands in for Stripe; intents are kept in a dict."""

    def __init__(self):
        self.intents = {}
        self.event = None
        self.reject_signature = False

    def create_payment_intent(self, amount, currency, metadata):
        intent_id = f"pi_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret",
            "amount": amount,
            "currency": currency,
            "status": "requires_payment_method",
            "metadata": metadata,
            "payment_method": None,
        }
        return self.intents[intent_id]

    def retrieve_payment_intent(self, payment_intent_id):
        if payment_intent_id not in self.intents:
            raise stripe.InvalidRequestError("No such payment_intent", "id")
        return self.intents[payment_intent_id]

    def succeed(self, payment_intent_id):
        self.intents[payment_intent_id]["status"] = "succeeded"
        self.intents[payment_intent_id]["payment_method"] = "pm_card_visa"

    def construct_event(self, payload, signature):
        if self.reject_signature:
            raise stripe.SignatureVerificationError("No signatures found", signature)
        return self.event


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr(payment_service, "gateway", fake)
    return fake


def _purchased(db, user):
    db.expire_all()
    return db.query(UserDataDB).filter(UserDataDB.user_id == user.id).one().purchased_products


class TestCatalog:

    def test_list_products(self, client):
        response = client.get("/api/products")
        assert response.status_code == 200
        products = {p["id"]: p for p in response.json()["data"]}
        assert set(products) == {"skill", "id-visa", "reference", "combo"}
        assert products["skill"]["price"] == 4900
        assert products["combo"]["price"] == 6000

    def test_get_product(self, client):
        assert client.get("/api/products/reference").json()["data"]["price"] == 1000
        response = client.get("/api/products/premium")
        assert response.status_code == 404

    def test_combo_grants_all_tracks(self):
        assert products_granted_by("combo") == ["skill", "id-visa", "reference"]
        assert products_granted_by("skill") == ["skill"]

    def test_grant_products_is_a_set_union(self):
        assert grant_products(["skill"], "combo") == ["skill", "id-visa", "reference"]
        assert grant_products(["skill"], "skill") == ["skill"]


class TestPaymentFlow:

    def test_create_intent(self, client, user, headers, gateway):
        response = client.post("/api/payments/create-intent", json={"productId": "skill"}, headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {"clientSecret": "pi_1_secret", "paymentIntentId": "pi_1"}
        assert gateway.intents["pi_1"]["amount"] == 4900
        assert gateway.intents["pi_1"]["metadata"] == {"userId": user.id, "productId": "skill"}

    def test_create_intent_unknown_product(self, client, user, headers, gateway):
        response = client.post("/api/payments/create-intent", json={"productId": "premium"}, headers=headers)
        assert response.status_code == 404

    def test_create_intent_requires_auth(self, client, db_session, gateway):
        response = client.post("/api/payments/create-intent", json={"productId": "skill"})
        assert response.status_code == 401

    def test_payments_not_configured(self, client, user, headers):
        response = client.post("/api/payments/create-intent", json={"productId": "skill"}, headers=headers)
        assert response.status_code == 503
        assert response.json()["code"] == "PAYMENTS_NOT_CONFIGURED"

    def test_confirm_grants_product(self, client, db_session, user, headers, gateway):
        client.post("/api/payments/create-intent", json={"productId": "combo"}, headers=headers)
        gateway.succeed("pi_1")

        response = client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["purchasedProduct"] == "combo"
        assert data["purchasedProducts"] == ["skill", "id-visa", "reference"]
        assert _purchased(db_session, user) == ["skill", "id-visa", "reference"]

    def test_confirm_is_idempotent(self, client, db_session, user, headers, gateway):
        client.post("/api/payments/create-intent", json={"productId": "skill"}, headers=headers)
        gateway.succeed("pi_1")

        first = client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers).json()
        second = client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers).json()

        assert first["data"]["paymentId"] == second["data"]["paymentId"]
        assert db_session.query(PaymentDB).count() == 1
        assert _purchased(db_session, user) == ["skill"]

    def test_confirm_unpaid_intent(self, client, db_session, user, headers, gateway):
        client.post("/api/payments/create-intent", json={"productId": "skill"}, headers=headers)

        response = client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers)
        assert response.status_code == 402
        assert response.json()["code"] == "PAYMENT_FAILED"
        assert response.json()["details"] == {"status": "requires_payment_method"}
        assert _purchased(db_session, user) == []

    def test_confirm_someone_elses_intent(self, client, user, other_user, gateway):
        client.post("/api/payments/create-intent", json={"productId": "skill"}, headers=auth_header(user))
        gateway.succeed("pi_1")
        response = client.post(
            "/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=auth_header(other_user)
        )
        assert response.status_code == 403

    def test_confirm_provider_error(self, client, user, headers, gateway):
        response = client.post("/api/payments/confirm", json={"paymentIntentId": "pi_missing"}, headers=headers)
        assert response.status_code == 502
        assert response.json()["code"] == "PAYMENT_PROVIDER_ERROR"

    def test_history(self, client, user, headers, gateway):
        client.post("/api/payments/create-intent", json={"productId": "reference"}, headers=headers)
        gateway.succeed("pi_1")
        client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers)

        history = client.get("/api/payments/history", headers=headers).json()["data"]
        assert len(history) == 1
        assert history[0]["productId"] == "reference"
        assert history[0]["productName"] == "Reference check"
        assert history[0]["amount"] == 1000
        assert history[0]["status"] == "succeeded"


class TestWebhook:

    def _event(self, user, intent_id="pi_hook", product_id="id-visa", event_type="payment_intent.succeeded"):
        return {
            "type": event_type,
            "data": {"object": {
                "id": intent_id,
                "amount": 1500,
                "currency": "usd",
                "status": "succeeded",
                "metadata": {"userId": user.id, "productId": product_id},
            }},
        }

    def test_succeeded_event_grants_product(self, client, db_session, user, gateway):
        gateway.event = self._event(user)
        response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "t=1,v1=abc"})
        assert response.status_code == 200
        assert response.json()["data"] == {"received": True, "handled": True}
        assert _purchased(db_session, user) == ["id-visa"]

    def test_webhook_and_confirm_grant_once(self, client, db_session, user, headers, gateway):
        client.post("/api/payments/create-intent", json={"productId": "id-visa"}, headers=headers)
        gateway.succeed("pi_1")
        gateway.event = self._event(user, intent_id="pi_1")

        client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "sig"})
        client.post("/api/payments/confirm", json={"paymentIntentId": "pi_1"}, headers=headers)

        assert db_session.query(PaymentDB).count() == 1
        assert _purchased(db_session, user) == ["id-visa"]

    def test_other_events_ignored(self, client, db_session, user, gateway):
        gateway.event = self._event(user, event_type="payment_intent.created")
        response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "sig"})
        assert response.json()["data"] == {"received": True, "handled": False}
        assert _purchased(db_session, user) == []

    def test_invalid_signature(self, client, db_session, gateway):
        gateway.reject_signature = True
        response = client.post("/api/payments/webhook", content=b"{}", headers={"Stripe-Signature": "forged"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"
