"""
Logique panier pure (pas de Stripe, pas de Shopify).
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from checkout_bridge.errors import InvalidCartError
from .metadata import product_metadata
from .models import CartLine, ResolvedLineItem

logger = logging.getLogger(__name__)


def _first(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


def _quantity(raw: Any) -> int:
    if raw is None or raw == "":
        return 1
    if isinstance(raw, bool):
        return 0
    try:
        qty = float(raw)
    except (TypeError, ValueError):
        return 0
    if not qty.is_integer():
        return 0
    return int(qty)


# module checkout_bridge.payments.cart
def parse_checkout_body(body: Any) -> Tuple[List[CartLine], Optional[str]]:
    """
    Lit le corps JSON du storefront.
    - Entrée: {"items": [{itemReference|variantId|id, quantity, unitPrice?|price?, title?}], "discountCode"?}
    - Quantité absente => 1; quantité non entière => 0 (ligne écartée ensuite).
    - Soulève InvalidCartError si items est absent, vide ou n'est pas une liste.
    """
    if not isinstance(body, dict):
        raise InvalidCartError("Invalid body")
    items = body.get("items")
    if not isinstance(items, list) or not items:
        raise InvalidCartError("No items")

    lines: List[CartLine] = []
    for it in items:
        if not isinstance(it, dict):
            continue
        reference = _first(it, "itemReference", "variantId", "id")
        price = _first(it, "unitPrice", "price")
        title = _first(it, "title")
        lines.append(CartLine(
            item_reference=str(reference).strip() if reference is not None else "",
            quantity=_quantity(it.get("quantity")),
            client_asserted_price=str(price) if price is not None else None,
            title=str(title) if title is not None else None,
        ))

    code = _first(body, "discountCode", "discount_code")
    code = str(code).strip() if code is not None else ""
    return lines, code or None


def usable_lines(lines: List[CartLine]) -> List[CartLine]:
    """
    Écarte les lignes non commandables, en conservant l'ordre du panier.
    - quantité <= 0
    - sans référence catalogue (la commande Shopify ne pourrait pas être reconstruite)
    """
    kept: List[CartLine] = []
    for index, line in enumerate(lines):
        if line.quantity <= 0 or not line.item_reference:
            logger.warning("cart.usable_lines dropped index=%s reference=%r quantity=%s",
                           index, line.item_reference, line.quantity)
            continue
        kept.append(line)
    return kept


def to_line_items(resolved: List[ResolvedLineItem]) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) dans l'ordre du panier.
    - unit_amount en unités mineures
    - product_data.metadata porte toujours la référence catalogue
    """
    return [
        {
            "quantity": item.quantity,
            "price_data": {
                "currency": item.currency,
                "unit_amount": item.unit_amount_minor,
                "product_data": {
                    "name": item.display_name,
                    "metadata": product_metadata(item.item_reference),
                },
            },
        }
        for item in resolved
    ]
