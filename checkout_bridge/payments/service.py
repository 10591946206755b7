"""
Cas d'usage 'payments': orchestre cart, pricing, discounts et stripe_client
pour ouvrir une session Stripe Checkout.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from checkout_bridge.config import Settings
from checkout_bridge.errors import MissingReferenceError, NoValidItemsError, SessionCreationError
from . import cart as cart_logic
from . import discounts
from . import pricing
from . import stripe_client
from .metadata import session_metadata
from .models import CartLine, CheckoutResult, PromotionReference, ResolvedLineItem

logger = logging.getLogger(__name__)


def _resolve_or_skip(settings: Settings, line: CartLine) -> Optional[ResolvedLineItem]:
    try:
        return pricing.resolve(line, settings)
    except MissingReferenceError as e:
        logger.warning("payments.service dropped line reference=%r: %s", line.item_reference, e.message)
        return None


def resolve_lines(settings: Settings, lines: List[CartLine]) -> List[ResolvedLineItem]:
    """
    Résout les prix de toutes les lignes, dans l'ordre du panier.
    - Les lookups catalogue sont parallélisés (executor.map conserve l'ordre d'entrée).
    - Une référence inconnue du catalogue écarte la ligne; toute autre erreur interrompt le checkout.
    """
    needs_lookup = sum(1 for line in lines if pricing.parse_price(line.client_asserted_price) is None)
    if needs_lookup <= 1:
        results = [_resolve_or_skip(settings, line) for line in lines]
    else:
        workers = min(settings.price_lookup_workers, needs_lookup)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda line: _resolve_or_skip(settings, line), lines))
    return [item for item in results if item is not None]


def session_params(
    settings: Settings,
    line_items: List[Dict[str, Any]],
    promotion: Optional[PromotionReference] = None,
) -> Dict[str, Any]:
    """
    Paramètres de checkout.Session.create.
    - Remise appliquée (discounts) et saisie client (allow_promotion_codes) sont exclusives:
      jamais les deux à la fois, pour ne pas cumuler la même remise.
    """
    params: Dict[str, Any] = {
        "mode": "payment",
        "line_items": line_items,
        "locale": settings.locale,
        "billing_address_collection": settings.billing_collection,
        "shipping_address_collection": {"allowed_countries": list(settings.shipping_countries)},
        "success_url": settings.success_url,
        "cancel_url": settings.cancel_url,
        "metadata": session_metadata(promotion),
    }
    if settings.payment_method_types:
        params["payment_method_types"] = list(settings.payment_method_types)
    if settings.automatic_tax:
        params["automatic_tax"] = {"enabled": True}
    if settings.default_shipping_rate_id:
        params["shipping_options"] = [{"shipping_rate": settings.default_shipping_rate_id}]

    if promotion:
        params["discounts"] = [{"promotion_code": promotion.external_id}]
    elif settings.allow_promotion_codes:
        params["allow_promotion_codes"] = True
    return params


def build_checkout_session(
    settings: Settings,
    lines: List[CartLine],
    discount_code: Optional[str] = None,
) -> CheckoutResult:
    """
    Panier -> session Stripe Checkout.
    Étapes:
      1) Filtrer les lignes non commandables (cart.usable_lines)
      2) Résoudre les prix (pricing.resolve), ordre du panier conservé
      3) Traduire le code de remise (discounts.translate), best-effort
      4) Créer la session (stripe_client.create_session) et renvoyer son URL
    Erreurs: NoValidItemsError (400), UpstreamLookupError / SessionCreationError (500).
    """
    resolved = resolve_lines(settings, cart_logic.usable_lines(lines))
    if not resolved:
        raise NoValidItemsError()

    promotion = discounts.translate(settings, discount_code) if discount_code else None
    params = session_params(settings, cart_logic.to_line_items(resolved), promotion)
    session = stripe_client.create_session(settings, params)

    url = session.get("url")
    if not url:
        raise SessionCreationError("Stripe session has no redirect url")
    logger.info(
        "payments.checkout session=%s items=%s promotion=%s",
        session.get("id"), len(resolved), promotion.code if promotion else None,
    )
    return CheckoutResult(session_id=str(session.get("id") or ""), redirect_url=url, promotion=promotion)
