"""
Gestionnaires d'exceptions.
- BridgeError: JSON {"error", "code"} avec le statut porté par l'erreur (400/500).
- HTTPException: réponse JSON FastAPI standard {"detail"}.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from checkout_bridge.errors import BridgeError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Enregistre les handlers BridgeError et HTTPException."""

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
