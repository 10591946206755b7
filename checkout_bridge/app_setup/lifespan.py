"""
Lifespan FastAPI: construit la configuration du process au démarrage.
- Settings est figé (frozen) et rangé dans app.state.settings.
- Les logs indiquent les intégrations manquantes (sans jamais afficher de secret).
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from checkout_bridge.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")
    settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY manquant: la création de session échouera")
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET manquant: tous les webhooks seront rejetés (400)")
    if not (settings.shopify_store_domain and settings.shopify_admin_token):
        logger.warning("SHOPIFY_STORE_DOMAIN / SHOPIFY_ADMIN_TOKEN manquant: catalogue et commandes indisponibles")
    logger.info("checkout bridge ready currency=%s locale=%s", settings.currency, settings.locale)
    yield
