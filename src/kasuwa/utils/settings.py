"""Marketplace settings.

Values come from the ``[custom]`` table of ``domain.toml`` and fall back to
the defaults below when a key is absent.
"""

from protean.utils.globals import current_domain

DEFAULT_CURRENCY = "NGN"
DEFAULT_TAX_RATE = 0.10
DEFAULT_WEIGHT_PER_ITEM_KG = 0.5
DEFAULT_SHIPPING_METHOD = "standard"
DEFAULT_PAYMENT_WEBHOOK_SECRET = "kasuwa-dev-webhook-secret"
DEFAULT_SHIPPING_RATES = {
    "standard": {"base": 5.00, "per_kg": 1.00},
    "express": {"base": 15.00, "per_kg": 2.00},
    "overnight": {"base": 25.00, "per_kg": 3.00},
}


def _custom() -> dict:
    return current_domain.config.get("custom") or {}


def currency() -> str:
    return _custom().get("currency", DEFAULT_CURRENCY)


def tax_rate() -> float:
    return float(_custom().get("tax_rate", DEFAULT_TAX_RATE))


def weight_per_item_kg() -> float:
    return float(_custom().get("weight_per_item_kg", DEFAULT_WEIGHT_PER_ITEM_KG))


def shipping_rates() -> dict:
    return _custom().get("shipping_rates") or DEFAULT_SHIPPING_RATES


def payment_webhook_secret() -> str:
    """Shared secret the payment provider signs its callbacks with."""
    return str(_custom().get("payment_webhook_secret", DEFAULT_PAYMENT_WEBHOOK_SECRET))
