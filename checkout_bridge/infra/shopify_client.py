"""
Client HTTP Shopify Admin (REST + GraphQL) basé sur httpx.
- Un appel = une requête bloquante avec timeout (Settings.http_timeout_seconds).
- Les erreurs réseau / statuts non-2xx sont converties en UpstreamLookupError,
  sauf 404 qui est renvoyé à l'appelant sous forme de None.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from checkout_bridge.config import Settings
from checkout_bridge.errors import UpstreamLookupError

logger = logging.getLogger(__name__)


def _headers(settings: Settings) -> Dict[str, str]:
    if not settings.shopify_store_domain or not settings.shopify_admin_token:
        raise UpstreamLookupError("SHOPIFY_STORE_DOMAIN / SHOPIFY_ADMIN_TOKEN manquant")
    return {
        "X-Shopify-Access-Token": settings.shopify_admin_token,
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def _decode(resp: httpx.Response, what: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        raise UpstreamLookupError(f"Shopify {what}: réponse non JSON (status={resp.status_code})")
    if not isinstance(data, dict):
        raise UpstreamLookupError(f"Shopify {what}: réponse inattendue")
    return data


def get_json(settings: Settings, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """GET {admin_url}/{path}; retourne None si la ressource n'existe pas (404)."""
    url = f"{settings.shopify_admin_url}/{path.lstrip('/')}"
    try:
        resp = httpx.get(
            url,
            params=params,
            headers=_headers(settings),
            timeout=settings.http_timeout_seconds,
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        logger.error("shopify GET %s failed: %s", path, e)
        raise UpstreamLookupError(f"Shopify GET {path} failed: {e}")
    if resp.status_code == 404:
        return None
    if not 200 <= resp.status_code < 300:
        logger.error("shopify GET %s failed: status=%s body=%s", path, resp.status_code, resp.text[:500])
        raise UpstreamLookupError(f"Shopify GET {path} failed: {resp.status_code}")
    return _decode(resp, f"GET {path}")


def post_json(settings: Settings, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """POST {admin_url}/{path} avec un corps JSON; toute réponse non-2xx est une erreur."""
    url = f"{settings.shopify_admin_url}/{path.lstrip('/')}"
    try:
        resp = httpx.post(url, json=payload, headers=_headers(settings), timeout=settings.http_timeout_seconds)
    except httpx.HTTPError as e:
        logger.error("shopify POST %s failed: %s", path, e)
        raise UpstreamLookupError(f"Shopify POST {path} failed: {e}")
    if not 200 <= resp.status_code < 300:
        logger.error("shopify POST %s failed: status=%s body=%s", path, resp.status_code, resp.text[:500])
        raise UpstreamLookupError(f"Shopify POST {path} failed: {resp.status_code}")
    return _decode(resp, f"POST {path}")


def graphql(settings: Settings, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Requête GraphQL Admin; les 'errors' GraphQL sont traitées comme un échec amont."""
    data = post_json(settings, "graphql.json", {"query": query, "variables": variables or {}})
    if data.get("errors"):
        logger.error("shopify graphql errors: %s", data.get("errors"))
        raise UpstreamLookupError("Shopify GraphQL error")
    return data.get("data") or {}
