# checkout_bridge.config
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Tuple
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du bridge.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Construit une seule fois un objet Settings immuable (get_settings)
- Les composants reçoivent Settings explicitement: aucune lecture d'environnement ad hoc
"""

DEFAULT_SUCCESS_URL = "https://evermois.com/pages/stripe-success?session_id={CHECKOUT_SESSION_ID}"
DEFAULT_CANCEL_URL = "https://evermois.com/cart"
DEFAULT_ORIGINS = "https://evermois.com,https://www.evermois.com"


def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def _env(name: str, default: str = "") -> str:
    return _clean_env(os.getenv(name) or default)


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    return tuple(s.strip() for s in _env(name, default).split(",") if s.strip())


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast=int):
    try:
        return cast(_env(name) or default)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Stripe (plateforme de paiement)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    webhook_tolerance_seconds: int = 300

    # Shopify (catalogue + commandes)
    shopify_store_domain: str = ""
    shopify_admin_token: str = ""
    shopify_api_version: str = "2024-10"
    http_timeout_seconds: float = 10.0

    # Session Checkout
    currency: str = "usd"
    success_url: str = DEFAULT_SUCCESS_URL
    cancel_url: str = DEFAULT_CANCEL_URL
    shipping_countries: Tuple[str, ...] = ("US", "CA", "GB", "AU", "DE")
    default_shipping_rate_id: str = ""
    locale: str = "en"
    billing_collection: str = "auto"
    payment_method_types: Tuple[str, ...] = field(default_factory=tuple)
    automatic_tax: bool = False
    allow_promotion_codes: bool = True
    price_lookup_workers: int = 4

    # CORS
    allowed_origins: Tuple[str, ...] = ("https://evermois.com", "https://www.evermois.com")

    @property
    def shopify_admin_url(self) -> str:
        domain = self.shopify_store_domain
        if domain.startswith("https://") or domain.startswith("http://"):
            domain = domain.split("://", 1)[1]
        return f"https://{domain.rstrip('/')}/admin/api/{self.shopify_api_version}"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Lit l'environnement une seule fois.
        - STRIPE_WEBHOOK_SECRET accepte l'alias historique WEBHOOK_SECRET
        - CURRENCY est normalisée en minuscules (format Stripe)
        """
        return cls(
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET") or _env("WEBHOOK_SECRET"),
            webhook_tolerance_seconds=_env_number("WEBHOOK_TOLERANCE_SECONDS", 300),
            shopify_store_domain=_env("SHOPIFY_STORE_DOMAIN"),
            shopify_admin_token=_env("SHOPIFY_ADMIN_TOKEN"),
            shopify_api_version=_env("SHOPIFY_API_VERSION", "2024-10"),
            http_timeout_seconds=_env_number("HTTP_TIMEOUT_SECONDS", 10.0, float),
            currency=_env("CURRENCY", "usd").lower(),
            success_url=_env("SUCCESS_URL", DEFAULT_SUCCESS_URL),
            cancel_url=_env("CANCEL_URL", DEFAULT_CANCEL_URL),
            shipping_countries=_env_list("SHIPPING_COUNTRIES", "US,CA,GB,AU,DE"),
            default_shipping_rate_id=_env("DEFAULT_SHIPPING_RATE_ID"),
            locale=_env("LOCALE", "en"),
            billing_collection=_env("BILLING_COLLECTION", "auto"),
            payment_method_types=_env_list("PAYMENT_METHOD_TYPES"),
            automatic_tax=_env_bool("AUTOMATIC_TAX", False),
            allow_promotion_codes=_env_bool("ALLOW_PROMOTION_CODES", True),
            price_lookup_workers=max(1, _env_number("PRICE_LOOKUP_WORKERS", 4)),
            allowed_origins=_env_list("ALLOWED_ORIGINS", DEFAULT_ORIGINS),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings du process (construit au premier appel, puis réutilisé)."""
    return Settings.from_env()
