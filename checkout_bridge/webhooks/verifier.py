"""
Authentification des webhooks Stripe.
Seule frontière d'authentification avant la création d'une commande: un événement
non vérifié n'est jamais traité, même en dev (pas de repli sans secret).
"""
import logging

import stripe

from checkout_bridge.errors import InvalidSignatureError
from checkout_bridge.payments.models import PaymentEvent
from checkout_bridge.payments.stripe_client import as_dict

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 300


# module checkout_bridge.webhooks.verifier
def verify(raw_bytes: bytes, signature_header: str, secret: str, tolerance: int = DEFAULT_TOLERANCE) -> PaymentEvent:
    """
    Valide la signature Stripe-Signature (HMAC-SHA256 sur "t.payload", comparaison à temps constant
    et fenêtre de tolérance sur t) puis décode l'événement.
    - raw_bytes: corps brut, non re-sérialisé
    - Lève InvalidSignatureError si secret/en-tête manquant, signature fausse, en-tête malformé
      ou payload illisible.
    """
    if not secret:
        raise InvalidSignatureError("Webhook secret not configured")
    if not signature_header:
        raise InvalidSignatureError("Missing Stripe-Signature header")
    try:
        event = stripe.Webhook.construct_event(raw_bytes, signature_header, secret, tolerance=tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning("webhook signature verification failed: %s", e)
        raise InvalidSignatureError(f"Webhook Error: {e}")
    except ValueError as e:
        logger.warning("webhook payload invalid: %s", e)
        raise InvalidSignatureError("Webhook Error: invalid payload")

    data = as_dict(event)
    event_type = str(data.get("type") or "")
    obj = as_dict((data.get("data") or {}).get("object"))
    return PaymentEvent(
        event_id=str(data.get("id") or ""),
        type=event_type,
        session_id=obj.get("id") if event_type.startswith("checkout.session.") else None,
        signature=signature_header,
        raw_payload=bytes(raw_bytes),
    )
