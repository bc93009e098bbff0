"""Application tests for charging orders, provider callbacks and refunds."""

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from kasuwa.ordering.cancellation import CancelOrder
from kasuwa.ordering.order import Order
from kasuwa.ordering.status import UpdateOrderStatus
from kasuwa.payments.gateway import get_gateway
from kasuwa.payments.payment import Payment
from kasuwa.payments.processing import ProcessPayment, RecordPaymentResult
from kasuwa.payments.queries import payment_for_order
from kasuwa.payments.refund import RefundPayment

CUSTOMER_ID = "cust-001"


@pytest.fixture
def order(create_product, place_order):
    tote = create_product(name="Ankara Tote Bag", price=3500.0)
    kaftan = create_product(name="Adire Kaftan", price=45000.0, vendor_id="vendor-002")
    return place_order((tote, 2), (kaftan, 1), shipping_cost=1500.0, tax_amount=850.0)


def _pay(order_id, customer_id=CUSTOMER_ID, payment_method="card"):
    payment_id = current_domain.process(
        ProcessPayment(order_id=order_id, customer_id=customer_id, payment_method=payment_method),
        asynchronous=False,
    )
    return current_domain.repository_for(Payment).get(payment_id)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _payment(payment_id):
    return current_domain.repository_for(Payment).get(payment_id)


class TestProcessPayment:
    def test_successful_payment_confirms_order(self, order):
        payment = _pay(order.id)

        assert payment.status == "Completed"
        assert payment.amount == 54350.0
        assert payment.currency == "NGN"
        assert payment.attempt_count == 1
        assert payment.payment_provider == "fake"
        assert payment.external_transaction_id.startswith("fake_txn_")
        assert _order(order.id).status == "Confirmed"

    def test_gateway_receives_transaction_id_as_idempotency_key(self, order):
        payment = _pay(order.id)
        call = get_gateway().calls[-1]
        assert call["idempotency_key"] == payment.transaction_id
        assert call["amount"] == 54350.0

    def test_declined_payment(self, order):
        get_gateway().configure(outcome="failed", failure_reason="Insufficient funds")
        payment = _pay(order.id)

        assert payment.status == "Failed"
        assert payment.failure_reason == "Insufficient funds"
        assert _order(order.id).status == "Pending"

    def test_gateway_error_marks_payment_failed(self, order):
        get_gateway().configure(outcome="error")
        payment = _pay(order.id)

        assert payment.status == "Failed"
        assert payment.failure_reason == "Payment provider error: Payment provider timed out"
        assert _order(order.id).status == "Pending"

    def test_pending_payment_waits_for_callback(self, order):
        get_gateway().configure(outcome="pending")
        payment = _pay(order.id)

        assert payment.status == "Processing"
        assert payment.external_transaction_id is not None
        assert _order(order.id).status == "Pending"

    def test_retry_reuses_the_payment(self, order):
        get_gateway().configure(outcome="failed")
        first = _pay(order.id)

        get_gateway().configure(outcome="succeeded")
        second = _pay(order.id)

        assert second.id == first.id
        assert second.transaction_id == first.transaction_id
        assert second.attempt_count == 2
        assert second.status == "Completed"
        keys = [c["idempotency_key"] for c in get_gateway().calls if c["method"] == "create_charge"]
        assert keys == [first.transaction_id, first.transaction_id]

    def test_second_payment_record_for_an_order_is_rejected(self, order):
        payment = _pay(order.id)
        duplicate = Payment.create(
            order_id=order.id,
            customer_id=CUSTOMER_ID,
            amount=54350.0,
            currency="NGN",
            payment_method="card",
        )

        with pytest.raises(ValidationError):
            current_domain.repository_for(Payment).add(duplicate)
        assert payment_for_order(order.id).id == payment.id

    def test_racing_charge_for_the_same_order_is_replayed_by_the_provider(self, order):
        payment = _pay(order.id)
        racing = Payment.create(
            order_id=order.id,
            customer_id=CUSTOMER_ID,
            amount=54350.0,
            currency="NGN",
            payment_method="card",
        )
        assert racing.transaction_id == payment.transaction_id

        replayed = get_gateway().create_charge(
            amount=racing.amount,
            currency=racing.currency,
            payment_method=racing.payment_method,
            idempotency_key=racing.transaction_id,
        )
        assert replayed.external_transaction_id == payment.external_transaction_id

    def test_completed_order_cannot_be_paid_twice(self, order):
        _pay(order.id)
        with pytest.raises(ValidationError) as exc:
            _pay(order.id)
        assert "Order already has a payment in Completed status" in str(exc.value)
        assert len([c for c in get_gateway().calls if c["method"] == "create_charge"]) == 1

    def test_other_customers_order_is_rejected(self, order):
        with pytest.raises(ValidationError) as exc:
            _pay(order.id, customer_id="cust-intruder")
        assert "Order does not belong to this customer" in str(exc.value)
        assert payment_for_order(order.id) is None

    def test_cancelled_order_cannot_be_paid(self, order):
        current_domain.process(CancelOrder(order_id=order.id, reason="Changed my mind"), asynchronous=False)
        with pytest.raises(ValidationError):
            _pay(order.id)


class TestPaymentCallbacks:
    def _pending_payment(self, order):
        get_gateway().configure(outcome="pending")
        return _pay(order.id)

    def test_completed_callback_confirms_order(self, order):
        payment = self._pending_payment(order)
        current_domain.process(
            RecordPaymentResult(payment_id=payment.id, status="completed", external_transaction_id="psk_123"),
            asynchronous=False,
        )

        assert _payment(payment.id).status == "Completed"
        assert _payment(payment.id).external_transaction_id == "psk_123"
        assert _order(order.id).status == "Confirmed"

    def test_failed_callback(self, order):
        payment = self._pending_payment(order)
        current_domain.process(
            RecordPaymentResult(payment_id=payment.id, status="failed", failure_reason="Bank rejected"),
            asynchronous=False,
        )

        assert _payment(payment.id).status == "Failed"
        assert _payment(payment.id).failure_reason == "Bank rejected"
        assert _order(order.id).status == "Pending"

    def test_repeated_callback_is_idempotent(self, order):
        payment = self._pending_payment(order)
        for _ in range(2):
            current_domain.process(
                RecordPaymentResult(payment_id=payment.id, status="completed", external_transaction_id="psk_123"),
                asynchronous=False,
            )

        assert _payment(payment.id).status == "Completed"
        confirmed = [t for t in _order(order.id).tracking if t.status == "Confirmed"]
        assert len(confirmed) == 1

    def test_unknown_callback_status_rejected(self, order):
        payment = self._pending_payment(order)
        with pytest.raises(ValidationError):
            current_domain.process(
                RecordPaymentResult(payment_id=payment.id, status="maybe"),
                asynchronous=False,
            )


class TestOrderCancellationCancelsPayment:
    def test_open_payment_is_cancelled(self, order):
        get_gateway().configure(outcome="pending")
        payment = _pay(order.id)

        current_domain.process(CancelOrder(order_id=order.id, reason="Found it cheaper"), asynchronous=False)

        cancelled = _payment(payment.id)
        assert cancelled.status == "Cancelled"
        assert cancelled.failure_reason == "Order cancelled: Found it cheaper"

    def test_failed_payment_is_left_alone(self, order):
        get_gateway().configure(outcome="failed")
        payment = _pay(order.id)

        current_domain.process(CancelOrder(order_id=order.id, reason="Gave up"), asynchronous=False)
        assert _payment(payment.id).status == "Failed"


class TestRefunds:
    def _refund(self, payment_id, amount, reason="Damaged on arrival"):
        return current_domain.process(
            RefundPayment(payment_id=payment_id, amount=amount, reason=reason, requested_by="admin-001"),
            asynchronous=False,
        )

    def test_partial_refund(self, order):
        payment = _pay(order.id)
        refund_id = self._refund(payment.id, 3500.0)

        refunded = _payment(payment.id)
        assert refund_id.startswith("fake_ref_")
        assert refunded.status == "PartiallyRefunded"
        assert refunded.refund_amount == 3500.0
        assert _order(order.id).status == "Confirmed"

    def test_full_refund_of_delivered_order_refunds_the_order(self, order):
        payment = _pay(order.id)
        for status in ("Processing", "Shipped", "Delivered"):
            current_domain.process(UpdateOrderStatus(order_id=order.id, status=status), asynchronous=False)

        self._refund(payment.id, 3500.0)
        self._refund(payment.id, 50850.0)

        assert _payment(payment.id).status == "Refunded"
        refunded_order = _order(order.id)
        assert refunded_order.status == "Refunded"
        assert refunded_order.tracking_history()[-1].updated_by == "admin-001"

    def test_refund_reaches_the_provider_under_a_derived_key(self, order):
        payment = _pay(order.id)
        self._refund(payment.id, 3500.0)
        self._refund(payment.id, 1000.0)

        keys = [c["idempotency_key"] for c in get_gateway().calls if c["method"] == "create_refund"]
        assert keys == [
            f"{payment.transaction_id}-R0-350000",
            f"{payment.transaction_id}-R350000-100000",
        ]

    def test_over_refund_is_rejected(self, order):
        payment = _pay(order.id)
        with pytest.raises(ValidationError):
            self._refund(payment.id, 60000.0)
        assert _payment(payment.id).refund_amount == 0.0
        assert not [c for c in get_gateway().calls if c["method"] == "create_refund"]

    def test_declined_refund_changes_nothing(self, order):
        payment = _pay(order.id)
        get_gateway().configure(refunds_succeed=False, failure_reason="Refund window closed")

        with pytest.raises(ValidationError) as exc:
            self._refund(payment.id, 1000.0)

        assert "Refund failed: Refund window closed" in str(exc.value)
        unchanged = _payment(payment.id)
        assert unchanged.status == "Completed"
        assert unchanged.refund_amount == 0.0

    def test_unpaid_payment_cannot_be_refunded(self, order):
        get_gateway().configure(outcome="failed")
        payment = _pay(order.id)
        with pytest.raises(ValidationError):
            self._refund(payment.id, 100.0)
