"""
Accès en lecture au catalogue Shopify: variants (prix) et codes de remise (price rules).
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from checkout_bridge.config import Settings
from checkout_bridge.infra import shopify_client

logger = logging.getLogger(__name__)


# module checkout_bridge.catalog.repository
def get_variant(settings: Settings, variant_id: str) -> Optional[Dict[str, Any]]:
    """
    Lit un variant par id.
    Retour: {price, title, product_id, ...} ou None si le variant n'existe pas.
    Lève UpstreamLookupError si Shopify est indisponible.
    """
    data = shopify_client.get_json(settings, f"variants/{quote(str(variant_id), safe='')}.json")
    if data is None:
        return None
    return data.get("variant") or None


def lookup_discount_code(settings: Settings, code: str) -> Optional[Dict[str, Any]]:
    """
    Résout un code de remise storefront via discount_codes/lookup.json.
    Retour: {"discount_code": {...}, "price_rule": {...}} ou None si le code est inconnu.
    """
    lookup = shopify_client.get_json(settings, "discount_codes/lookup.json", params={"code": code})
    discount_code = (lookup or {}).get("discount_code") or {}
    price_rule_id = discount_code.get("price_rule_id")
    if not price_rule_id:
        return None

    rule = shopify_client.get_json(settings, f"price_rules/{price_rule_id}.json")
    price_rule = (rule or {}).get("price_rule")
    if not price_rule:
        logger.warning("catalog.lookup_discount_code price_rule missing id=%s code=%s", price_rule_id, code)
        return None
    return {"discount_code": discount_code, "price_rule": price_rule}
