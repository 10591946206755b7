"""
Middlewares transverses de l'application.
- register_basic_middlewares: CORS selon ALLOWED_ORIGINS ("*" autorise toute origine).
Notes:
- Le preflight OPTIONS est servi par CORSMiddleware (204/200) avant le routage.
- Les webhooks Stripe n'ont pas d'en-tête Origin: non concernés par CORS.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkout_bridge.config import Settings


def register_basic_middlewares(app: FastAPI, settings: Settings) -> None:
    """
    Ajoute CORSMiddleware:
    - origines: settings.allowed_origins
    - méthodes: POST, OPTIONS (seules méthodes utiles au storefront)
    - en-têtes: Content-Type, Authorization
    """
    origins = list(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=False,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
