"""
Module 'payments' (feature-first): point d'entrée public.
Réunit résolution des prix, traduction des remises, logique panier, metadata Stripe,
client Stripe et construction de la session Checkout.
"""

from .models import (
    CartLine,
    ResolvedLineItem,
    DiscountKind,
    DiscountRule,
    PromotionReference,
    CheckoutResult,
)
from .pricing import parse_price, to_minor_units, resolve
from .discounts import rule_from_price_rule, translate
from .cart import parse_checkout_body, usable_lines, to_line_items
from .metadata import product_metadata, item_reference_from_line_item
from .service import build_checkout_session, session_params

__all__ = [
    # models
    "CartLine",
    "ResolvedLineItem",
    "DiscountKind",
    "DiscountRule",
    "PromotionReference",
    "CheckoutResult",
    # pricing
    "parse_price",
    "to_minor_units",
    "resolve",
    # discounts
    "rule_from_price_rule",
    "translate",
    # cart
    "parse_checkout_body",
    "usable_lines",
    "to_line_items",
    # metadata
    "product_metadata",
    "item_reference_from_line_item",
    # service
    "build_checkout_session",
    "session_params",
]
