import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from checkout_bridge.config import Settings, get_settings
from checkout_bridge.orders import service as orders_service
from checkout_bridge.webhooks import verifier

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


# module checkout_bridge.webhooks.views
@router.post("/stripe", include_in_schema=False)
async def stripe_webhook(request: Request, settings: Settings = Depends(get_settings)):
    """
    Webhook Stripe: consomme checkout.session.completed pour créer la commande Shopify.
    - Signature: vérifiée sur le corps brut (verifier.verify); 400 sinon, sans traitement
    - Synthèse: orders_service.synthesize (idempotent par session Stripe)
    - Réponses: {"received": true, "status": "created"|"skipped"|"updated"|"ignored"}
    - Erreurs de traitement: 500 pour que Stripe relivre l'événement plus tard
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    event = verifier.verify(payload, sig_header, settings.stripe_webhook_secret, settings.webhook_tolerance_seconds)

    try:
        outcome = await run_in_threadpool(orders_service.synthesize, settings, event)
    except Exception:
        logger.exception("Erreur webhook_stripe event=%s session=%s", event.event_id, event.session_id)
        return JSONResponse(status_code=500, content={"error": "webhook handler failed"})

    logger.info("payments.webhook status=%s session=%s order=%s",
                outcome.status, outcome.session_id, outcome.commerce_order_id)
    return JSONResponse({"received": True, "status": outcome.status})
