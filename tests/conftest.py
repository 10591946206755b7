import hashlib
import hmac
import json
import time
from typing import Any, Callable, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from checkout_bridge.app_setup.factory import create_app
from checkout_bridge.config import Settings

WEBHOOK_SECRET = "whsec_test_secret"


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        shopify_store_domain="evermois.myshopify.com",
        shopify_admin_token="shpat_test",
        currency="usd",
        success_url="https://shop.test/success?session_id={CHECKOUT_SESSION_ID}",
        cancel_url="https://shop.test/cart",
        allowed_origins=("https://shop.test",),
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature tel que Stripe le calcule: HMAC-SHA256 de "t.payload"."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def completed_event(session_id: str = "cs_test_abc", event_type: str = "checkout.session.completed") -> bytes:
    event = {
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": session_id, "object": "checkout.session"}},
    }
    return json.dumps(event).encode("utf-8")


def stripe_session(
    session_id: str = "cs_test_abc",
    references: tuple = ("V1",),
    payment_status: str = "paid",
) -> Dict[str, Any]:
    """Session Checkout telle que relue par retrieve_session (line_items.data.price.product développé)."""
    line_items = [
        {
            "id": f"li_{i}",
            "quantity": 2,
            "price": {
                "unit_amount": 999,
                "product": {"id": f"prod_{i}", "metadata": {"item_reference": ref, "variantId": ref}},
            },
        }
        for i, ref in enumerate(references)
    ]
    return {
        "id": session_id,
        "currency": "usd",
        "payment_status": payment_status,
        "amount_total": 1998,
        "total_details": {"amount_discount": 0},
        "metadata": {"source": "storefront"},
        "customer_details": {"email": "jane@example.com", "name": "Jane Q Public", "phone": "+15550100"},
        "shipping_details": {
            "name": "Jane Q Public",
            "address": {
                "line1": "1 Main St",
                "line2": "Apt 2",
                "city": "Springfield",
                "state": "IL",
                "country": "US",
                "postal_code": "62701",
            },
        },
        "line_items": {"object": "list", "has_more": False, "data": line_items},
    }


class FakeShopifyOrders:
    """Commandes Shopify en mémoire, indexées par session Stripe (tag)."""

    def __init__(self):
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.create_calls: List[Dict[str, Any]] = []
        self.paid_calls: List[str] = []

    def find_order_by_session(self, settings, session_id):
        order = self.orders.get(session_id)
        return str(order["id"]) if order else None

    def create_order(self, settings, payload):
        self.create_calls.append(payload)
        order = {"id": 1000 + len(self.create_calls), **payload["order"]}
        session_id = payload["order"]["note_attributes"][0]["value"]
        self.orders[session_id] = order
        return order

    def mark_paid_once(self, settings, order_id, order, scale=100):
        existing = next((o for o in self.orders.values() if str(o["id"]) == str(order_id)), None)
        if existing is None or existing["financial_status"] == "paid":
            return False
        existing["financial_status"] = "paid"
        self.paid_calls.append(str(order_id))
        return True


@pytest.fixture
def shopify_orders(monkeypatch) -> FakeShopifyOrders:
    fake = FakeShopifyOrders()
    monkeypatch.setattr("checkout_bridge.orders.repository.find_order_by_session", fake.find_order_by_session)
    monkeypatch.setattr("checkout_bridge.orders.repository.create_order", fake.create_order)
    monkeypatch.setattr("checkout_bridge.orders.repository.mark_paid_once", fake.mark_paid_once)
    return fake


@pytest.fixture
def signer() -> Callable[..., str]:
    return sign_payload
