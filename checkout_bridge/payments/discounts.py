"""
Traduction d'un code de remise Shopify en code promo Stripe.
- Deux formes supportées: pourcentage et montant fixe (réparti sur la commande).
- Lookup-before-create: un code promo actif existant est toujours réutilisé.
- Toute erreur amont dégrade en "pas de remise": le checkout continue.
"""
import hashlib
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from checkout_bridge.catalog import repository as catalog_repo
from checkout_bridge.config import Settings
from checkout_bridge.errors import BridgeError
from . import stripe_client
from .models import DiscountKind, DiscountRule, PromotionReference
from .pricing import parse_price, to_minor_units

logger = logging.getLogger(__name__)

UNSUPPORTED = DiscountRule(kind=DiscountKind.UNSUPPORTED)


def _magnitude(value: Any) -> Optional[Decimal]:
    # Shopify exprime la valeur d'une price rule en négatif ("-10.0")
    if value is None:
        return None
    return parse_price(str(value).strip().lstrip("-"))


def rule_from_price_rule(price_rule: Dict[str, Any], currency: str) -> DiscountRule:
    """
    Convertit une price rule Shopify en DiscountRule.
    - percentage: 0 < valeur <= 100
    - fixed_amount: valeur > 0, allocation "across" (remise sur le total)
    - livraison, produits/collections ciblés, BXGY, ou autre: UNSUPPORTED
    """
    rule = price_rule or {}
    if rule.get("target_type", "line_item") != "line_item":
        return UNSUPPORTED
    if rule.get("target_selection", "all") != "all":
        return UNSUPPORTED
    for key in ("entitled_product_ids", "entitled_variant_ids", "entitled_collection_ids"):
        if rule.get(key):
            return UNSUPPORTED
    # BXGY
    ratio = rule.get("prerequisite_to_entitlement_quantity_ratio") or {}
    purchase = rule.get("prerequisite_to_entitlement_purchase") or {}
    if any(ratio.values()) or any(purchase.values()):
        return UNSUPPORTED

    magnitude = _magnitude(rule.get("value"))
    if magnitude is None or magnitude <= 0:
        return UNSUPPORTED

    minimum = None
    subtotal_range = rule.get("prerequisite_subtotal_range") or {}
    threshold = parse_price(subtotal_range.get("greater_than_or_equal_to"))
    if threshold is not None and threshold > 0:
        minimum = to_minor_units(threshold, currency)

    source_id = str(rule["id"]) if rule.get("id") is not None else None
    value_type = rule.get("value_type")
    if value_type == "percentage":
        if magnitude > 100:
            return UNSUPPORTED
        return DiscountRule(
            kind=DiscountKind.PERCENTAGE,
            magnitude=magnitude,
            minimum_subtotal_minor=minimum,
            source_id=source_id,
        )
    if value_type == "fixed_amount" and rule.get("allocation_method", "across") == "across":
        return DiscountRule(
            kind=DiscountKind.FIXED_AMOUNT,
            magnitude=magnitude,
            minimum_subtotal_minor=minimum,
            source_id=source_id,
        )
    return UNSUPPORTED


def coupon_params(rule: DiscountRule, code: str, currency: str) -> Dict[str, Any]:
    """Paramètres Coupon.create équivalents à la règle (montants en unités mineures)."""
    params: Dict[str, Any] = {
        "duration": "once",
        "name": code[:40],
        "metadata": {"source": "shopify", "code": code, "price_rule_id": rule.source_id or ""},
    }
    if rule.kind is DiscountKind.PERCENTAGE:
        params["percent_off"] = float(rule.magnitude)
    elif rule.kind is DiscountKind.FIXED_AMOUNT:
        params["amount_off"] = to_minor_units(rule.magnitude, currency)
        params["currency"] = currency
    else:
        raise ValueError(f"unsupported discount kind: {rule.kind}")
    return params


def coupon_id_for(rule: DiscountRule, code: str, currency: str) -> str:
    """Id de coupon déterministe: une même combinaison code + règle donne toujours le même id."""
    fingerprint = "|".join([
        code,
        rule.kind.value,
        str(rule.magnitude.normalize()),
        currency,
        str(rule.minimum_subtotal_minor or 0),
    ])
    return "shopify-" + hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:24]


def _restrictions(rule: DiscountRule, currency: str) -> Optional[Dict[str, Any]]:
    if not rule.minimum_subtotal_minor:
        return None
    return {"minimum_amount": rule.minimum_subtotal_minor, "minimum_amount_currency": currency}


def _reference(promo: Dict[str, Any]) -> PromotionReference:
    return PromotionReference(external_id=str(promo["id"]), code=str(promo.get("code") or ""))


def ensure_promotion(settings: Settings, code: str, rule: DiscountRule) -> Optional[PromotionReference]:
    """
    Garantit l'existence d'un code promo Stripe pour (code, règle).
    - Réutilise un code promo actif existant (aucune création).
    - Sinon crée coupon + code promo; "already exists" (course entre requêtes) => relecture.
    """
    currency = settings.currency
    existing = stripe_client.find_promotion_code(settings, code)
    if existing:
        return _reference(existing)

    coupon_id = coupon_id_for(rule, code, currency)
    try:
        stripe_client.create_coupon(settings, coupon_id, coupon_params(rule, code, currency))
    except stripe_client.AlreadyExistsError:
        logger.info("discounts.ensure_promotion coupon reused id=%s", coupon_id)

    try:
        promo = stripe_client.create_promotion_code(
            settings,
            coupon_id=coupon_id,
            code=code,
            restrictions=_restrictions(rule, currency),
            metadata={"source": "shopify"},
        )
    except stripe_client.AlreadyExistsError:
        promo = stripe_client.find_promotion_code(settings, code)
        if not promo:
            logger.warning("discounts.ensure_promotion code=%s exists but could not be re-read", code)
            return None
    return _reference(promo)


def translate(settings: Settings, code: Optional[str]) -> Optional[PromotionReference]:
    """
    Code storefront -> PromotionReference Stripe, ou None.
    - Code inconnu, forme non supportée ou erreur amont: None (jamais d'exception).
    - Le minimum de sous-total est porté par les restrictions Stripe, jamais vérifié ici.
    """
    code = (code or "").strip()
    if not code:
        return None
    try:
        found = catalog_repo.lookup_discount_code(settings, code)
        if not found:
            logger.info("discounts.translate unknown code=%s", code)
            return None
        rule = rule_from_price_rule(found["price_rule"], settings.currency)
        if rule.kind is DiscountKind.UNSUPPORTED:
            logger.info("discounts.translate unsupported rule code=%s", code)
            return None
        return ensure_promotion(settings, code, rule)
    except BridgeError as e:
        logger.warning("discounts.translate degraded to no discount code=%s: %s", code, e.message)
        return None
