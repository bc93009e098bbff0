"""Order numbers: ``ORD-YYYYMMDD-NNNN`` with a per-day sequence.

The sequence is zero-padded to four digits and keeps counting past 9999,
so the day's highest number is found numerically, not by string order.
"""

from datetime import UTC, date, datetime

from protean.utils.globals import current_domain

from kasuwa.ordering.order import Order

PREFIX = "ORD"


def next_order_number(today: date | None = None) -> str:
    today = today or datetime.now(UTC).date()
    day_prefix = f"{PREFIX}-{today:%Y%m%d}-"

    issued = (
        current_domain.repository_for(Order)
        ._dao.query.filter(order_number__contains=day_prefix)
        .limit(None)
        .all()
        .items
    )
    sequences = [
        int(suffix)
        for suffix in (order.order_number[len(day_prefix) :] for order in issued)
        if suffix.isdigit()
    ]
    return f"{day_prefix}{max(sequences, default=0) + 1:04d}"
