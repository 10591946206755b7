"""
Factory d'application recommandée pour les entrypoints (ex: checkout_bridge.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Optional

from fastapi import FastAPI

from checkout_bridge.config import Settings, get_settings
from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares
from .routers import register_routers


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - CORS
      - gestionnaires d'exceptions
      - routers (checkout, webhooks, health)
    Retour:
      FastAPI prêt à être utilisé par le serveur ASGI.
    """
    app = FastAPI(title="Checkout Bridge", lifespan=lifespan)
    if settings is not None:
        # Settings explicites (tests, embarqué): remplacent celles de l'environnement
        app.dependency_overrides[get_settings] = lambda: settings
    settings = settings or get_settings()
    app.state.settings = settings
    register_basic_middlewares(app, settings)
    register_exception_handlers(app)
    register_routers(app)
    return app
