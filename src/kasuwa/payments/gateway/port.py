"""Payment gateway port.

The marketplace never talks to a provider directly; it records what the
provider declares through this interface. Adapters are expected to enforce
their own network timeouts and raise ``GatewayError`` when the provider
cannot be reached or answers with garbage. Provider callbacks are only
trusted after ``verify_webhook_signature`` accepts them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayError(Exception):
    """The provider could not be reached or did not answer in time."""


@dataclass(frozen=True)
class ChargeResult:
    """Result of a charge attempt.

    ``status`` is ``succeeded``, ``failed`` or ``pending`` (the provider will
    report the outcome later through a callback).
    """

    status: str
    external_transaction_id: str | None = None
    response: str | None = None
    failure_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def pending(self) -> bool:
        return self.status == "pending"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_transaction_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name = "gateway"

    @abstractmethod
    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method: str,
        idempotency_key: str,
    ) -> ChargeResult:
        """Charge the customer. Repeating an idempotency key must not charge twice."""
        ...

    @abstractmethod
    def create_refund(
        self,
        external_transaction_id: str,
        amount: float,
        reason: str,
        idempotency_key: str,
    ) -> RefundResult:
        """Refund part or all of a previous charge. Repeating an idempotency key must not refund twice."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a callback payload was sent by the provider."""
        ...
