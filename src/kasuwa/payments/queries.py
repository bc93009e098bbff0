"""Payment lookups."""

from protean.utils.globals import current_domain

from kasuwa.payments.payment import Payment


def payment_for_order(order_id) -> Payment | None:
    """The payment recorded against ``order_id``, if any."""
    payments = (
        current_domain.repository_for(Payment)
        ._dao.query.filter(order_id=str(order_id))
        .order_by("-created_at")
        .limit(1)
        .all()
        .items
    )
    return payments[0] if payments else None
