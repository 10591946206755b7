from fastapi import APIRouter, Depends

from checkout_bridge.config import Settings, get_settings

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root(settings: Settings = Depends(get_settings)):
    return {
        "ok": True,
        "stripe_configured": bool(settings.stripe_secret_key and settings.stripe_webhook_secret),
        "shopify_configured": bool(settings.shopify_store_domain and settings.shopify_admin_token),
    }
