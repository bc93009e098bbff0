"""Payment processing — charge an order and record provider callbacks.

The amount and currency are always taken from the order. A failed payment
is retried on the same Payment record so the provider sees the same
idempotency key again.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.order import Order, OrderStatus
from kasuwa.payments.gateway import get_gateway
from kasuwa.payments.gateway.port import GatewayError
from kasuwa.payments.payment import Payment, PaymentStatus
from kasuwa.payments.queries import payment_for_order

PAYABLE_ORDER_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})
RETRYABLE_PAYMENT_STATES = frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED})
CALLBACK_STATUSES = ("completed", "failed")


@kasuwa.command(part_of="Payment")
class ProcessPayment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    payment_provider = String(max_length=50)


@kasuwa.command(part_of="Payment")
class RecordPaymentResult:
    """A result declared by the provider, delivered after the charge call."""

    payment_id = Identifier(required=True)
    status = String(required=True, max_length=20)  # completed, failed
    external_transaction_id = String(max_length=255)
    failure_reason = String(max_length=500)
    response = Text()


def _confirm_order(order) -> None:
    if OrderStatus(order.status) == OrderStatus.PENDING:
        order.confirm_payment()
        current_domain.repository_for(Order).add(order)


def _payment_to_attempt(order, command) -> Payment:
    payment = payment_for_order(order.id)
    if payment is None:
        return Payment.create(
            order_id=order.id,
            customer_id=command.customer_id,
            amount=order.pricing.total,
            currency=order.pricing.currency,
            payment_method=command.payment_method,
            payment_provider=command.payment_provider or get_gateway().name,
        )

    if PaymentStatus(payment.status) not in RETRYABLE_PAYMENT_STATES:
        raise ValidationError({"order_id": [f"Order already has a payment in {payment.status} status"]})

    payment.payment_method = command.payment_method
    return payment


@kasuwa.command_handler(part_of=Payment)
class PaymentProcessingHandler:
    @handle(ProcessPayment)
    def process_payment(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise ValidationError({"order_id": ["Order does not belong to this customer"]})
        if OrderStatus(order.status) not in PAYABLE_ORDER_STATES:
            raise ValidationError({"order_id": [f"Cannot pay for an order in {order.status} status"]})

        payment = _payment_to_attempt(order, command)
        payment.start_processing()

        gateway = get_gateway()
        try:
            result = gateway.create_charge(
                amount=payment.amount,
                currency=payment.currency,
                payment_method=payment.payment_method,
                idempotency_key=payment.transaction_id,
            )
        except GatewayError as exc:
            logger.warning("payment_gateway_error", payment_id=str(payment.id), error=str(exc))
            payment.record_failure(f"Payment provider error: {exc}")
        else:
            if result.succeeded:
                payment.record_success(result.external_transaction_id, result.response)
                _confirm_order(order)
            elif result.pending:
                payment.external_transaction_id = result.external_transaction_id
                payment.payment_response = result.response
            else:
                payment.record_failure(result.failure_reason, result.response)

        current_domain.repository_for(Payment).add(payment)

        logger.info(
            "payment_processed",
            payment_id=str(payment.id),
            order_id=str(order.id),
            status=payment.status,
            attempt=payment.attempt_count,
        )
        return str(payment.id)

    @handle(RecordPaymentResult)
    def record_payment_result(self, command):
        if command.status not in CALLBACK_STATUSES:
            raise ValidationError({"status": [f"Status must be one of: {', '.join(CALLBACK_STATUSES)}"]})

        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)

        if command.status == "completed":
            recorded = payment.record_success(command.external_transaction_id, command.response)
        else:
            recorded = payment.record_failure(command.failure_reason, command.response)

        if not recorded:
            logger.info("payment_result_already_recorded", payment_id=str(payment.id), status=payment.status)
            return

        repo.add(payment)
        if command.status == "completed":
            _confirm_order(current_domain.repository_for(Order).get(payment.order_id))

        logger.info("payment_result_recorded", payment_id=str(payment.id), status=payment.status)
