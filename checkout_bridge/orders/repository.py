"""
Accès Shopify pour la feature 'orders': recherche et création de commandes.
La session Stripe d'origine est la clé d'idempotence: elle est posée en tag, en note
et en note_attributes sur chaque commande créée.
"""
import logging
import re
from typing import Any, Dict, Optional, Tuple

from checkout_bridge.config import Settings
from checkout_bridge.infra import shopify_client
from checkout_bridge.payments.models import SynthesizedOrder

logger = logging.getLogger(__name__)

_FIND_BY_TAG = """
query ordersByTag($query: String!) {
  orders(first: 1, query: $query) {
    edges { node { id legacyResourceId } }
  }
}
"""

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def session_tag(session_id: str) -> str:
    return f"stripe-{session_id}"


def _major(amount_minor: Optional[int], scale: int) -> Optional[str]:
    if amount_minor is None:
        return None
    if scale == 1:
        return str(amount_minor)
    return f"{amount_minor / scale:.2f}"


def _variant_id(item_reference: str) -> Any:
    # Accepte "123", 123 ou un gid GraphQL "gid://shopify/ProductVariant/123"
    ref = str(item_reference).strip()
    if ref.isdigit():
        return int(ref)
    match = _TRAILING_DIGITS.search(ref) if ref.startswith("gid://") else None
    return int(match.group(1)) if match else ref


# module checkout_bridge.orders.repository
def to_shopify_order(order: SynthesizedOrder, scale: int = 100) -> Dict[str, Any]:
    """
    Payload REST orders.json pour une commande synthétisée.
    - line_items: variant_id + quantité + prix unitaire réellement facturé
    - note / note_attributes / tags: référence de la session Stripe
    - discount_codes et transactions reflètent ce que Stripe a encaissé
    """
    line_items = []
    for line in order.line_items:
        item: Dict[str, Any] = {"variant_id": _variant_id(line.item_reference), "quantity": line.quantity}
        price = _major(line.unit_amount_minor, scale)
        if price is not None:
            item["price"] = price
        line_items.append(item)

    payload: Dict[str, Any] = {
        "email": order.email,
        "financial_status": order.financial_status,
        "currency": order.currency,
        "line_items": line_items,
        "shipping_address": order.shipping_address.model_dump(),
        "note": f"Stripe session: {order.source_session_id}",
        "note_attributes": [{"name": "stripe_session_id", "value": order.source_session_id}],
        "tags": session_tag(order.source_session_id),
    }
    if order.amount_discount_minor:
        payload["discount_codes"] = [{
            "code": order.discount_code or "STRIPE",
            "amount": _major(order.amount_discount_minor, scale),
            "type": "fixed_amount",
        }]
    if order.amount_total_minor is not None and order.financial_status == "paid":
        payload["transactions"] = [{
            "kind": "sale",
            "status": "success",
            "gateway": "stripe",
            "amount": _major(order.amount_total_minor, scale),
        }]
    return {"order": payload}


def find_order_by_session(settings: Settings, session_id: str) -> Optional[str]:
    """Id de la commande déjà créée pour cette session Stripe, ou None."""
    data = shopify_client.graphql(settings, _FIND_BY_TAG, {"query": f'tag:"{session_tag(session_id)}"'})
    edges = ((data.get("orders") or {}).get("edges")) or []
    if not edges:
        return None
    node = edges[0].get("node") or {}
    return str(node.get("legacyResourceId") or node.get("id") or "") or None


def create_order(settings: Settings, payload: Dict[str, Any]) -> Dict[str, Any]:
    """POST orders.json; retourne la commande créée ({"id": ..., ...})."""
    data = shopify_client.post_json(settings, "orders.json", payload)
    return data.get("order") or {}


def create_order_once(settings: Settings, order: SynthesizedOrder, scale: int = 100) -> Tuple[bool, Optional[str]]:
    """
    Crée la commande sauf si une commande référence déjà la session (check-then-create).
    Retour: (created, order_id). created=False => commande existante, aucun POST effectué.
    """
    existing = find_order_by_session(settings, order.source_session_id)
    if existing:
        logger.info("orders.create_order_once skipped session=%s order=%s", order.source_session_id, existing)
        return False, existing
    created = create_order(settings, to_shopify_order(order, scale))
    order_id = str(created.get("id") or "") or None
    logger.info("orders.create_order_once created session=%s order=%s", order.source_session_id, order_id)
    return True, order_id


def mark_paid_once(settings: Settings, order_id: str, order: SynthesizedOrder, scale: int = 100) -> bool:
    """
    Passe une commande 'pending' à 'paid' en enregistrant la vente Stripe (paiement différé confirmé).
    Retour: False si la commande est déjà payée ou introuvable (aucun POST), True sinon.
    """
    data = shopify_client.get_json(settings, f"orders/{order_id}.json", params={"fields": "id,financial_status"})
    current = ((data or {}).get("order") or {}).get("financial_status")
    if data is None or current == "paid":
        logger.info("orders.mark_paid_once skipped order=%s financial_status=%s", order_id, current)
        return False
    shopify_client.post_json(settings, f"orders/{order_id}/transactions.json", {
        "transaction": {
            "kind": "sale",
            "status": "success",
            "source": "external",
            "gateway": "stripe",
            "amount": _major(order.amount_total_minor, scale),
            "currency": order.currency,
        }
    })
    logger.info("orders.mark_paid_once paid session=%s order=%s", order.source_session_id, order_id)
    return True
