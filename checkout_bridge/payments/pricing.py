"""
Résolution du prix unitaire autoritaire d'une ligne de panier.
- Prix client (déjà remisé côté storefront) utilisé s'il est parsable et >= 0.
- Sinon repli sur le prix du variant Shopify.
- Conversion en unités mineures: arrondi half-away-from-zero sur Decimal.
"""
import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

from checkout_bridge.config import Settings
from checkout_bridge.errors import MissingReferenceError, UpstreamLookupError
from checkout_bridge.catalog import repository as catalog_repo
from .models import CartLine, ResolvedLineItem

logger = logging.getLogger(__name__)

# Devises sans décimales côté Stripe
ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg",
    "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})

_NON_NUMERIC = re.compile(r"[^0-9.,\-]")
_EXPONENT = re.compile(r"\d\s*[eE]\s*[+\-]?\d")

# Au-delà, le passage en unités mineures dépasse la précision Decimal (28 chiffres)
_MAX_ADJUSTED_EXPONENT = 18

VariantLookup = Callable[[Settings, str], Optional[Dict[str, Any]]]


def currency_scale(currency: str) -> int:
    return 1 if (currency or "").lower() in ZERO_DECIMAL_CURRENCIES else 100


def parse_price(value: Any) -> Optional[Decimal]:
    """
    Parse un prix storefront tolérant.
    - Accepte str|int|float|Decimal; symboles monétaires et espaces ignorés.
    - "19,99" == "19.99"; "1.234,56" et "1,234.56" -> 1234.56 (le séparateur le plus à droite est décimal).
    - Notation exponentielle ("1e+16") refusée: jamais réinterprétée en chiffres concaténés.
    - Retourne None si vide, négatif, non fini, démesuré ou illisible.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        text = str(value)
        if _EXPONENT.search(text):
            return None
        raw = _NON_NUMERIC.sub("", text)
    if not raw:
        return None

    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif "," in raw:
        raw = raw.replace(",", ".")

    try:
        price = Decimal(raw)
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    if price and price.adjusted() > _MAX_ADJUSTED_EXPONENT:
        return None
    return price


def to_minor_units(price: Decimal, currency: str) -> int:
    """Montant en unités mineures, arrondi au plus proche (0.5 -> loin de zéro)."""
    scaled = (price * currency_scale(currency)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(scaled)


def _variant_name(variant: Dict[str, Any]) -> str:
    title = (variant.get("title") or "").strip()
    if title == "Default Title":
        title = ""
    product_title = (variant.get("product_title") or "").strip()
    if product_title and title:
        return f"{product_title} - {title}"
    return product_title or title


def resolve(
    line: CartLine,
    settings: Settings,
    lookup_variant: Optional[VariantLookup] = None,
) -> ResolvedLineItem:
    """
    Produit un ResolvedLineItem pour une ligne de panier.
    - Aucun appel catalogue si le prix client est valide (y compris "0").
    - MissingReferenceError: ni prix client valide, ni référence (ou référence inconnue du catalogue).
    - UpstreamLookupError: lookup catalogue en échec ou sans prix.
    """
    currency = settings.currency
    reference = (line.item_reference or "").strip()
    asserted = parse_price(line.client_asserted_price)

    if asserted is not None:
        return ResolvedLineItem(
            item_reference=reference,
            quantity=line.quantity,
            unit_amount_minor=to_minor_units(asserted, currency),
            display_name=line.title or "Product",
            currency=currency,
        )

    if not reference:
        raise MissingReferenceError("Cart line has no usable price and no item reference")

    variant = (lookup_variant or catalog_repo.get_variant)(settings, reference)
    if variant is None:
        raise MissingReferenceError(f"Unknown item reference: {reference}")
    catalog_price = parse_price(variant.get("price"))
    if catalog_price is None:
        raise UpstreamLookupError(f"Catalog returned no usable price for {reference}")

    logger.debug("pricing.resolve catalog fallback reference=%s price=%s", reference, catalog_price)
    return ResolvedLineItem(
        item_reference=reference,
        quantity=line.quantity,
        unit_amount_minor=to_minor_units(catalog_price, currency),
        display_name=line.title or _variant_name(variant) or "Product",
        currency=currency,
    )
