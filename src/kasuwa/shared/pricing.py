"""Money helpers shared by cart summaries and checkout.

Shipping is a flat base per method plus a per-kilogram rate. Items without
a recorded weight count as ``weight_per_item_kg``; items that do not need
shipping do not count at all.
"""

from collections.abc import Iterable

from kasuwa.utils import settings

TOLERANCE = 0.01


def round_money(value) -> float:
    return round(float(value or 0.0), 2)


def money_equal(a, b, tolerance: float = TOLERANCE) -> bool:
    return abs(round_money(a) - round_money(b)) <= tolerance


def shipping_rate(method: str | None) -> dict:
    rates = settings.shipping_rates()
    key = (method or settings.DEFAULT_SHIPPING_METHOD).lower()
    return rates.get(key) or rates[settings.DEFAULT_SHIPPING_METHOD]


def parcel_weight(parcels: Iterable[tuple[int, float | None, bool]]) -> float:
    """Total weight of ``(quantity, weight_kg, requires_shipping)`` parcels."""
    default_weight = settings.weight_per_item_kg()
    total = 0.0
    for quantity, weight_kg, requires_shipping in parcels:
        if not requires_shipping:
            continue
        total += quantity * (weight_kg if weight_kg else default_weight)
    return total


def estimate_shipping(method: str | None, parcels: Iterable[tuple[int, float | None, bool]]) -> float:
    parcels = [p for p in parcels if p[2]]
    if not parcels:
        return 0.0
    rate = shipping_rate(method)
    return round_money(rate["base"] + parcel_weight(parcels) * rate["per_kg"])


def estimate_tax(subtotal: float) -> float:
    return round_money(subtotal * settings.tax_rate())
