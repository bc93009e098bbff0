"""Configurable fake payment gateway for development and testing.

Simulates a provider without any external calls. Outcomes can be switched
at runtime: ``succeeded``, ``failed``, ``pending`` or ``error`` (raises
``GatewayError`` like a timed-out provider would).

Callbacks are signed with an HMAC-SHA256 of the raw body under the
configured webhook secret; ``sign`` produces the signature a real provider
would send.
"""

import hashlib
import hmac
from uuid import uuid4

from kasuwa.payments.gateway.port import ChargeResult, GatewayError, PaymentGateway, RefundResult
from kasuwa.utils import settings

OUTCOMES = ("succeeded", "failed", "pending", "error")


class FakeGateway(PaymentGateway):
    name = "fake"

    def __init__(self, webhook_secret: str | None = None) -> None:
        self.webhook_secret = webhook_secret
        self.outcome: str = "succeeded"
        self.failure_reason: str = "Card declined"
        self.refunds_succeed: bool = True
        self.calls: list[dict] = []
        self._charges: dict[str, ChargeResult] = {}
        self._refunds: dict[str, RefundResult] = {}

    def configure(
        self,
        outcome: str = "succeeded",
        failure_reason: str = "Card declined",
        refunds_succeed: bool = True,
    ) -> None:
        """Configure gateway behaviour at runtime."""
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown outcome {outcome!r}; expected one of {', '.join(OUTCOMES)}")
        self.outcome = outcome
        self.failure_reason = failure_reason
        self.refunds_succeed = refunds_succeed

    def create_charge(
        self,
        amount: float,
        currency: str,
        payment_method: str,
        idempotency_key: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "payment_method": payment_method,
                "idempotency_key": idempotency_key,
            }
        )

        # A settled charge is replayed, never repeated
        previous = self._charges.get(idempotency_key)
        if previous is not None and previous.succeeded:
            return previous

        if self.outcome == "error":
            raise GatewayError("Payment provider timed out")

        if self.outcome == "succeeded":
            result = ChargeResult(
                status="succeeded",
                external_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                response="Charge successful",
            )
        elif self.outcome == "pending":
            result = ChargeResult(
                status="pending",
                external_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                response="Awaiting confirmation",
            )
        else:
            result = ChargeResult(status="failed", failure_reason=self.failure_reason)

        self._charges[idempotency_key] = result
        return result

    def create_refund(
        self,
        external_transaction_id: str,
        amount: float,
        reason: str,
        idempotency_key: str,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "external_transaction_id": external_transaction_id,
                "amount": amount,
                "reason": reason,
                "idempotency_key": idempotency_key,
            }
        )

        previous = self._refunds.get(idempotency_key)
        if previous is not None:
            return previous

        if not self.refunds_succeed:
            return RefundResult(success=False, failure_reason=self.failure_reason)

        result = RefundResult(success=True, refund_transaction_id=f"fake_ref_{uuid4().hex[:12]}")
        self._refunds[idempotency_key] = result
        return result

    def _secret(self) -> bytes:
        return (self.webhook_secret or settings.payment_webhook_secret()).encode()

    def sign(self, payload: str) -> str:
        return hmac.new(self._secret(), payload.encode(), hashlib.sha256).hexdigest()

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.sign(payload), signature)
