"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `checkout_bridge.asgi:app`.
- Toute la configuration FastAPI est centralisée dans checkout_bridge.app_setup.factory.
"""

from checkout_bridge.app import app
