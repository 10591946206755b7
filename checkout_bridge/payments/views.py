import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from checkout_bridge.config import Settings, get_settings
from checkout_bridge.errors import BridgeError, InvalidCartError
from checkout_bridge.payments import cart as payments_cart
from checkout_bridge.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])


# module checkout_bridge.payments.views
@router.post("/create-checkout-session")
async def create_checkout_session(request: Request, settings: Settings = Depends(get_settings)):
    """
    Crée une session Stripe Checkout pour le panier du storefront.
    - Entrée JSON: { "items": [ { "itemReference": "<variant_id>", "quantity": 2, "unitPrice": "9.99", "title": "..." } ],
                     "discountCode": "SUMMER10" }
    - Sortie: {"redirectUrl", "url", "sessionId"} (url conservé pour les scripts storefront existants)
    - Erreurs: 400 panier vide/invalide, 500 échec Shopify/Stripe; autres méthodes: 405
    """
    try:
        body = await request.json()
    except ValueError:
        raise InvalidCartError("Invalid JSON body")

    lines, discount_code = payments_cart.parse_checkout_body(body)
    try:
        result = await run_in_threadpool(payments_service.build_checkout_session, settings, lines, discount_code)
    except BridgeError as e:
        logger.warning("create-checkout-session rejected code=%s: %s", e.code, e.message)
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(status_code=500, detail="create session failed")

    return JSONResponse({
        "redirectUrl": result.redirect_url,
        "url": result.redirect_url,
        "sessionId": result.session_id,
    })
