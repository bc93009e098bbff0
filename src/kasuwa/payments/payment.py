"""Payment aggregate — the single payment record of an order.

The payment only records what the provider declared; amounts always come
from the order. There is one payment per order, and ``transaction_id`` is
derived from the order id. It is the idempotency key of every charge attempt,
so retries and racing requests for the same order reach the provider under
one key.

State Machine:
    PENDING → PROCESSING → COMPLETED | FAILED
    PENDING | PROCESSING → CANCELLED
    FAILED → PROCESSING (retry) | COMPLETED (late provider confirmation)
    COMPLETED | PARTIALLY_REFUNDED → PARTIALLY_REFUNDED | REFUNDED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from kasuwa.domain import kasuwa
from kasuwa.payments.events import (
    PaymentCancelled,
    PaymentCompleted,
    PaymentFailed,
    PaymentInitiated,
    PaymentProcessingStarted,
    PaymentRefunded,
)
from kasuwa.shared.pricing import TOLERANCE, money_equal, round_money


class PaymentStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "PartiallyRefunded"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING, PaymentStatus.CANCELLED},
    PaymentStatus.PROCESSING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.FAILED: {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED},
    PaymentStatus.CANCELLED: set(),  # Terminal
    PaymentStatus.REFUNDED: set(),  # Terminal
}

REFUNDABLE_STATES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED})


def can_transition(current, target) -> bool:
    return PaymentStatus(target) in _VALID_TRANSITIONS.get(PaymentStatus(current), set())


def transaction_id_for(order_id) -> str:
    return f"KSW-{order_id}"


@kasuwa.aggregate
class Payment:
    order_id = Identifier(required=True, unique=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    payment_provider = String(max_length=50)
    transaction_id = String(required=True, max_length=100)
    external_transaction_id = String(max_length=255)
    amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="NGN")
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_date = DateTime()
    processed_date = DateTime()
    failure_reason = String(max_length=500)
    payment_response = Text()
    attempt_count = Integer(default=0)
    refund_amount = Float(default=0.0)
    refund_date = DateTime()
    refund_reason = String(max_length=500)
    refund_transaction_id = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def refunds_cannot_exceed_amount(self):
        if self.refund_amount and self.amount and self.refund_amount > self.amount + TOLERANCE:
            raise ValidationError({"refund_amount": ["Refunded amount cannot exceed the payment amount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, order_id, customer_id, amount, currency, payment_method, payment_provider=None):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            customer_id=customer_id,
            payment_method=payment_method,
            payment_provider=payment_provider,
            transaction_id=transaction_id_for(order_id),
            amount=round_money(amount),
            currency=currency,
            status=PaymentStatus.PENDING.value,
            payment_date=now,
            attempt_count=0,
            refund_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentInitiated(
                payment_id=str(payment.id),
                order_id=str(order_id),
                customer_id=str(customer_id),
                amount=payment.amount,
                currency=currency,
                payment_method=payment_method,
                payment_provider=payment_provider or "",
                transaction_id=payment.transaction_id,
                initiated_at=now,
            )
        )
        return payment

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: PaymentStatus) -> None:
        current = PaymentStatus(self.status)
        if not can_transition(current, target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def start_processing(self) -> None:
        """Hand the charge to the provider (first attempt or a retry)."""
        self._assert_can_transition(PaymentStatus.PROCESSING)

        now = datetime.now(UTC)
        self.status = PaymentStatus.PROCESSING.value
        self.attempt_count = (self.attempt_count or 0) + 1
        self.failure_reason = None
        self.updated_at = now

        self.raise_(
            PaymentProcessingStarted(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                attempt_number=self.attempt_count,
                started_at=now,
            )
        )

    def record_success(self, external_transaction_id=None, response=None) -> bool:
        """Record a provider-declared success. Returns False when already recorded."""
        if PaymentStatus(self.status) == PaymentStatus.COMPLETED:
            return False
        self._assert_can_transition(PaymentStatus.COMPLETED)

        now = datetime.now(UTC)
        self.status = PaymentStatus.COMPLETED.value
        self.external_transaction_id = external_transaction_id or self.external_transaction_id
        self.payment_response = response
        self.failure_reason = None
        self.processed_date = now
        self.updated_at = now

        self.raise_(
            PaymentCompleted(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=self.amount,
                currency=self.currency,
                external_transaction_id=self.external_transaction_id,
                completed_at=now,
            )
        )
        return True

    def record_failure(self, reason, response=None) -> bool:
        """Record a provider-declared failure. Returns False when already recorded."""
        if PaymentStatus(self.status) == PaymentStatus.FAILED:
            return False
        self._assert_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        self.status = PaymentStatus.FAILED.value
        self.failure_reason = reason or "Unknown failure"
        self.payment_response = response
        self.updated_at = now

        self.raise_(
            PaymentFailed(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                reason=self.failure_reason,
                attempt_number=self.attempt_count or 0,
                failed_at=now,
            )
        )
        return True

    def cancel(self, reason=None) -> None:
        self._assert_can_transition(PaymentStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = PaymentStatus.CANCELLED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            PaymentCancelled(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    @property
    def refundable_amount(self) -> float:
        return round_money(self.amount - (self.refund_amount or 0.0))

    def refund_key(self, amount) -> str:
        """Idempotency key of a refund of ``amount`` on top of what has been refunded so far."""
        refunded = int(round((self.refund_amount or 0.0) * 100))
        requested = int(round(float(amount) * 100))
        return f"{self.transaction_id}-R{refunded}-{requested}"

    def check_refund(self, amount) -> None:
        """Reject a refund that the payment cannot take."""
        if PaymentStatus(self.status) not in REFUNDABLE_STATES:
            raise ValidationError({"status": ["Only completed or partially refunded payments can be refunded"]})
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than zero"]})
        if round_money(amount) > self.refundable_amount + 1e-9:
            raise ValidationError(
                {"amount": [f"Refund amount ({amount:.2f}) exceeds the refundable balance ({self.refundable_amount:.2f})"]}
            )

    def refund(self, amount, reason, refund_transaction_id=None) -> None:
        self.check_refund(amount)

        total_refunded = round_money((self.refund_amount or 0.0) + amount)
        target = PaymentStatus.REFUNDED if money_equal(total_refunded, self.amount) else PaymentStatus.PARTIALLY_REFUNDED
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        self.status = target.value
        self.refund_amount = total_refunded
        self.refund_date = now
        self.refund_reason = reason
        self.refund_transaction_id = refund_transaction_id
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                amount=round_money(amount),
                total_refunded=total_refunded,
                status=target.value,
                reason=reason,
                refund_transaction_id=refund_transaction_id,
                refunded_at=now,
            )
        )

    @property
    def is_fully_refunded(self) -> bool:
        return PaymentStatus(self.status) == PaymentStatus.REFUNDED
