"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from kasuwa.domain import kasuwa


@kasuwa.event(part_of="Payment")
class PaymentInitiated:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    payment_provider = String(required=True)
    transaction_id = String(required=True)
    initiated_at = DateTime(required=True)


@kasuwa.event(part_of="Payment")
class PaymentProcessingStarted:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    attempt_number = Integer(required=True)
    started_at = DateTime(required=True)


@kasuwa.event(part_of="Payment")
class PaymentCompleted:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    external_transaction_id = String()
    completed_at = DateTime(required=True)


@kasuwa.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    attempt_number = Integer(required=True)
    failed_at = DateTime(required=True)


@kasuwa.event(part_of="Payment")
class PaymentCancelled:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@kasuwa.event(part_of="Payment")
class PaymentRefunded:
    """Money went back to the customer; ``status`` tells partial from full."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    total_refunded = Float(required=True)
    status = String(required=True)
    reason = String(required=True)
    refund_transaction_id = String()
    refunded_at = DateTime(required=True)
