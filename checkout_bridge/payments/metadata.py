"""
Métadonnées Stripe posées à la création de session et relues par le webhook.
Chaque line item porte la référence catalogue: c'est le seul lien entre la session
Stripe et le variant Shopify au moment de créer la commande.
"""
from typing import Any, Dict, Optional

from .models import PromotionReference

ITEM_REFERENCE_KEY = "item_reference"
LEGACY_ITEM_REFERENCE_KEY = "variantId"


# module checkout_bridge.payments.metadata
def product_metadata(item_reference: str) -> Dict[str, str]:
    """Métadonnées du product_data d'un line item (clé courante + clé historique du storefront)."""
    ref = str(item_reference or "")
    return {ITEM_REFERENCE_KEY: ref, LEGACY_ITEM_REFERENCE_KEY: ref}


def session_metadata(promotion: Optional[PromotionReference]) -> Dict[str, str]:
    meta = {"source": "storefront"}
    if promotion:
        meta["discount_code"] = promotion.code
        meta["promotion_code_id"] = promotion.external_id
    return meta


def item_reference_from_line_item(line_item: Dict[str, Any]) -> Optional[str]:
    """
    Extrait la référence catalogue d'un line item Stripe (price.product expand requis).
    - Tolérant: retourne None si le produit n'est pas développé ou sans métadonnées.
    """
    price = (line_item or {}).get("price") or {}
    product = price.get("product") if isinstance(price, dict) else None
    if not isinstance(product, dict):
        return None
    meta = product.get("metadata") or {}
    ref = meta.get(ITEM_REFERENCE_KEY) or meta.get(LEGACY_ITEM_REFERENCE_KEY)
    return str(ref) if ref else None
