"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
La clé API est passée à chaque appel (api_key=...), jamais posée globalement sur le module.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe

from checkout_bridge.config import Settings
from checkout_bridge.errors import SessionCreationError, UpstreamLookupError

logger = logging.getLogger(__name__)

SESSION_EXPAND = ["line_items.data.price.product"]


class AlreadyExistsError(UpstreamLookupError):
    """Stripe signale que la ressource (coupon / code promo) existe déjà."""


def as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject est un dict dans les anciennes versions du SDK, expose to_dict() ensuite
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


def _is_already_exists(e: stripe.StripeError) -> bool:
    code = getattr(e, "code", None) or ""
    return code == "resource_already_exists" or "already exists" in str(e).lower()


# module checkout_bridge.payments.stripe_client
def require_stripe(settings: Settings) -> str:
    """
    Retourne la clé secrète Stripe à utiliser pour les appels.
    - Lève UpstreamLookupError si STRIPE_SECRET_KEY est absent.
    """
    if not settings.stripe_secret_key:
        raise UpstreamLookupError("STRIPE_SECRET_KEY manquant")
    return settings.stripe_secret_key


def create_session(settings: Settings, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - params: arguments de checkout.Session.create (line_items, mode, urls, discounts...)
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    Erreurs: SessionCreationError enveloppant l'erreur Stripe.
    """
    try:
        api_key = require_stripe(settings)
    except UpstreamLookupError as e:
        raise SessionCreationError(e.message, cause=e)
    try:
        session = stripe.checkout.Session.create(api_key=api_key, **params)
    except stripe.StripeError as e:
        logger.error("stripe.create_session failed: %s", getattr(e, "user_message", None) or e)
        raise SessionCreationError(f"Stripe session creation failed: {e}", cause=e)
    return as_dict(session)


def retrieve_session(settings: Settings, session_id: str) -> Dict[str, Any]:
    """
    Relit une session Checkout avec ses line_items et produits (expand).
    Retour: dict session incluant "id", "payment_status", "line_items", "customer_details", etc.
    """
    if not session_id:
        raise UpstreamLookupError("session_id manquant")
    try:
        session = stripe.checkout.Session.retrieve(
            session_id, expand=SESSION_EXPAND, api_key=require_stripe(settings)
        )
    except stripe.StripeError as e:
        logger.error("stripe.retrieve_session failed id=%s: %s", session_id, e)
        raise UpstreamLookupError(f"Session introuvable: {e}")
    return as_dict(session)


def list_line_items(settings: Settings, session_id: str) -> List[Dict[str, Any]]:
    """Liste complète (pagination automatique) des line_items d'une session, produits inclus."""
    try:
        page = stripe.checkout.Session.list_line_items(
            session_id, limit=100, expand=["data.price.product"], api_key=require_stripe(settings)
        )
        return [as_dict(li) for li in page.auto_paging_iter()]
    except stripe.StripeError as e:
        logger.error("stripe.list_line_items failed id=%s: %s", session_id, e)
        raise UpstreamLookupError(f"Line items introuvables: {e}")


def find_promotion_code(settings: Settings, code: str) -> Optional[Dict[str, Any]]:
    """Cherche un code promo actif par code exact; None si aucun."""
    try:
        res = stripe.PromotionCode.list(code=code, active=True, limit=1, api_key=require_stripe(settings))
    except stripe.StripeError as e:
        raise UpstreamLookupError(f"PromotionCode.list failed: {e}")
    data = as_dict(res).get("data") or []
    return as_dict(data[0]) if data else None


def create_coupon(settings: Settings, coupon_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Crée un coupon avec un id explicite; AlreadyExistsError si l'id est déjà pris."""
    try:
        coupon = stripe.Coupon.create(id=coupon_id, api_key=require_stripe(settings), **params)
    except stripe.StripeError as e:
        if _is_already_exists(e):
            raise AlreadyExistsError(f"Coupon {coupon_id} already exists")
        raise UpstreamLookupError(f"Coupon.create failed: {e}")
    return as_dict(coupon)


def create_promotion_code(
    settings: Settings,
    *,
    coupon_id: str,
    code: str,
    restrictions: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Crée un code promo client rattaché au coupon; AlreadyExistsError si le code actif existe déjà.
    Le coupon est désigné par promotion={"type": "coupon", ...} (API 2025-09-30 et suivantes).
    """
    params: Dict[str, Any] = {"promotion": {"type": "coupon", "coupon": coupon_id}, "code": code}
    if restrictions:
        params["restrictions"] = restrictions
    if metadata:
        params["metadata"] = metadata
    try:
        promo = stripe.PromotionCode.create(api_key=require_stripe(settings), **params)
    except stripe.StripeError as e:
        if _is_already_exists(e):
            raise AlreadyExistsError(f"Promotion code {code} already exists")
        raise UpstreamLookupError(f"PromotionCode.create failed: {e}")
    return as_dict(promo)
