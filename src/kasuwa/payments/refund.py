"""Payment refund — command and handler.

The provider refund is requested first; the payment only changes once the
provider has accepted it. The refund idempotency key is derived from the
amount already refunded and the amount requested, so a repeated request
for the same refund reaches the provider under the same key.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.order import SYSTEM_ACTOR, Order, OrderStatus, can_transition
from kasuwa.payments.gateway import get_gateway
from kasuwa.payments.gateway.port import GatewayError
from kasuwa.payments.payment import Payment


@kasuwa.command(part_of="Payment")
class RefundPayment:
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(required=True, max_length=500)
    requested_by = String(max_length=100)


@kasuwa.command_handler(part_of=Payment)
class RefundHandler:
    @handle(RefundPayment)
    def refund_payment(self, command):
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        payment.check_refund(command.amount)

        try:
            result = get_gateway().create_refund(
                external_transaction_id=payment.external_transaction_id or payment.transaction_id,
                amount=command.amount,
                reason=command.reason,
                idempotency_key=payment.refund_key(command.amount),
            )
        except GatewayError as exc:
            raise ValidationError({"payment": [f"Payment provider error: {exc}"]}) from exc

        if not result.success:
            logger.warning("refund_declined", payment_id=str(payment.id), reason=result.failure_reason)
            raise ValidationError({"payment": [f"Refund failed: {result.failure_reason}"]})

        payment.refund(command.amount, command.reason, result.refund_transaction_id)
        repo.add(payment)

        if payment.is_fully_refunded:
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(payment.order_id)
            if can_transition(order.status, OrderStatus.REFUNDED):
                order.mark_refunded(
                    notes=f"Payment refunded: {command.reason}",
                    updated_by=command.requested_by or SYSTEM_ACTOR,
                )
                order_repo.add(order)

        logger.info(
            "payment_refunded",
            payment_id=str(payment.id),
            amount=command.amount,
            total_refunded=payment.refund_amount,
            status=payment.status,
        )
        return payment.refund_transaction_id
