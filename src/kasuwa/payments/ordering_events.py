"""Payments reacts to order events.

A cancelled order must not be charged later, so any payment still open for
it is cancelled.
"""

from protean import handle
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.events import OrderCancelled
from kasuwa.payments.payment import Payment, PaymentStatus
from kasuwa.payments.queries import payment_for_order

OPEN_PAYMENT_STATES = frozenset({PaymentStatus.PENDING, PaymentStatus.PROCESSING})


@kasuwa.event_handler(part_of=Payment, stream_category="kasuwa::order")
class OrderPaymentEventHandler:
    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        payment = payment_for_order(event.order_id)
        if payment is None or PaymentStatus(payment.status) not in OPEN_PAYMENT_STATES:
            return

        payment.cancel(reason=f"Order cancelled: {event.reason}")
        current_domain.repository_for(Payment).add(payment)
        logger.info("payment_cancelled", payment_id=str(payment.id), order_id=str(event.order_id))
