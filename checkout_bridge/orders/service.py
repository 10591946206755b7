"""
Synthèse d'une commande Shopify à partir d'un paiement Stripe confirmé.
La session est toujours relue chez Stripe: le payload du webhook peut être partiel.
"""
import logging
from typing import Any, Dict, List, Optional

from checkout_bridge.config import Settings
from checkout_bridge.errors import UpstreamLookupError
from checkout_bridge.payments import stripe_client
from checkout_bridge.payments.metadata import item_reference_from_line_item
from checkout_bridge.payments.models import (
    OrderLine,
    PaymentEvent,
    ShippingAddress,
    SynthesisOutcome,
    SynthesizedOrder,
)
from checkout_bridge.payments.pricing import currency_scale
from . import repository

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
HANDLED_EVENTS = (CHECKOUT_COMPLETED, ASYNC_PAYMENT_SUCCEEDED)
PAID_STATUSES = ("paid", "no_payment_required")


def split_name(full_name: Optional[str]) -> tuple:
    """("Jean Paul Martin") -> ("Jean", "Paul Martin"): coupe au premier blanc."""
    parts = (full_name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _first(mapping: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = mapping.get(key)
        if value:
            return str(value)
    return ""


def shipping_address_from_session(session: Dict[str, Any]) -> ShippingAddress:
    """
    Adresse de livraison, noms de champs tolérants selon la version d'API Stripe:
    shipping_details -> collected_information.shipping_details -> customer_details.
    """
    customer = session.get("customer_details") or {}
    shipping = (
        session.get("shipping_details")
        or (session.get("collected_information") or {}).get("shipping_details")
        or session.get("shipping")
        or {}
    )
    addr = shipping.get("address") or customer.get("address") or {}
    first, last = split_name(shipping.get("name") or customer.get("name"))
    return ShippingAddress(
        first_name=first,
        last_name=last,
        address1=_first(addr, "line1", "line_1"),
        address2=_first(addr, "line2", "line_2"),
        city=_first(addr, "city"),
        province=_first(addr, "state", "province"),
        country=_first(addr, "country"),
        zip=_first(addr, "postal_code", "zip"),
        phone=_first(shipping, "phone") or _first(customer, "phone"),
    )


def order_lines_from_line_items(line_items: List[Dict[str, Any]]) -> List[OrderLine]:
    lines: List[OrderLine] = []
    for li in line_items:
        reference = item_reference_from_line_item(li)
        if not reference:
            logger.warning("orders.synthesize line item without item reference id=%s", li.get("id"))
            continue
        price = li.get("price") or {}
        unit_amount = price.get("unit_amount") if isinstance(price, dict) else None
        lines.append(OrderLine(
            item_reference=reference,
            quantity=int(li.get("quantity") or 1),
            unit_amount_minor=unit_amount,
        ))
    return lines


def order_from_session(session: Dict[str, Any], line_items: List[Dict[str, Any]]) -> SynthesizedOrder:
    """Construit la SynthesizedOrder (pure, sans appel réseau) à partir de la session relue."""
    customer = session.get("customer_details") or {}
    totals = session.get("total_details") or {}
    metadata = session.get("metadata") or {}
    payment_status = session.get("payment_status") or ""
    return SynthesizedOrder(
        source_session_id=str(session.get("id") or ""),
        email=customer.get("email") or session.get("customer_email") or "",
        currency=(session.get("currency") or "usd").upper(),
        line_items=order_lines_from_line_items(line_items),
        shipping_address=shipping_address_from_session(session),
        financial_status="paid" if payment_status in PAID_STATUSES else "pending",
        amount_total_minor=session.get("amount_total"),
        amount_discount_minor=int(totals.get("amount_discount") or 0),
        discount_code=metadata.get("discount_code") or None,
    )


def session_line_items(settings: Settings, session: Dict[str, Any]) -> List[Dict[str, Any]]:
    """line_items développés de la session; liste complète paginée si l'expand est tronqué."""
    expanded = session.get("line_items") or {}
    if expanded.get("has_more") or not expanded:
        return stripe_client.list_line_items(settings, str(session.get("id")))
    return list(expanded.get("data") or [])


# module checkout_bridge.orders.service
def synthesize(settings: Settings, event: PaymentEvent) -> SynthesisOutcome:
    """
    Traite un événement Stripe vérifié.
    - Types traités: checkout.session.completed et async_payment_succeeded; tout autre type: "ignored".
    - Relit la session (line_items + produits), reconstruit la commande, puis
      repository.create_order_once: "created" ou "skipped" si la session a déjà une commande.
    - async_payment_succeeded sur une commande existante encore 'pending': "updated" (mark_paid_once).
    - Les erreurs amont (UpstreamLookupError) remontent: le webhook répond 500 et Stripe relivre.
    """
    if event.type not in HANDLED_EVENTS:
        logger.info("orders.synthesize ignored type=%s event=%s", event.type, event.event_id)
        return SynthesisOutcome(status="ignored", session_id=event.session_id)
    if not event.session_id:
        raise UpstreamLookupError("checkout event without session id")

    session = stripe_client.retrieve_session(settings, event.session_id)
    order = order_from_session(session, session_line_items(settings, session))
    if not order.line_items:
        raise UpstreamLookupError(f"Session {event.session_id} has no line item with an item reference")

    scale = currency_scale(order.currency)
    created, order_id = repository.create_order_once(settings, order, scale)
    status = "created" if created else "skipped"
    if (not created and order_id and event.type == ASYNC_PAYMENT_SUCCEEDED
            and order.financial_status == "paid"):
        if repository.mark_paid_once(settings, order_id, order, scale):
            status = "updated"
    return SynthesisOutcome(
        status=status,
        session_id=order.source_session_id,
        order=order,
        commerce_order_id=order_id,
    )
