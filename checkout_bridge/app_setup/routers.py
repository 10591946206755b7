"""
Registre central des routers.
- API: checkout (payments), webhooks Stripe
- Health
"""
from fastapi import FastAPI

from checkout_bridge.health.router import router as health_router
from checkout_bridge.payments import views as payments_views
from checkout_bridge.webhooks import views as webhooks_views


def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(webhooks_views.router)
    app.include_router(health_router)
