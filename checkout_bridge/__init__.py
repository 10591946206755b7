"""Storefront -> Stripe Checkout -> Shopify order bridge."""

__version__ = "0.1.0"
