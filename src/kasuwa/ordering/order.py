"""Order aggregate — a placed order, its frozen line items and tracking log.

An order is created once at checkout. After that its items and prices never
change; the order only moves through status transitions, each of which
appends to the tracking log.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    PENDING | CONFIRMED | PROCESSING → CANCELLED → REFUNDED
    SHIPPED | DELIVERED → RETURNED → REFUNDED
    DELIVERED → REFUNDED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from kasuwa.domain import kasuwa
from kasuwa.ordering.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderStatusChanged,
    OrderTrackingUpdated,
)
from kasuwa.shared.pricing import money_equal, round_money

SYSTEM_ACTOR = "System"


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"
    RETURNED = "Returned"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED, OrderStatus.REFUNDED},
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

CANCELLABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING})


def can_transition(current, target) -> bool:
    """Whether an order in ``current`` status may move to ``target``."""
    return OrderStatus(target) in _VALID_TRANSITIONS.get(OrderStatus(current), set())


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@kasuwa.value_object(part_of="Order")
class ProductSnapshot:
    """The product as it looked when the order was placed.

    Copied, never referenced, so later catalogue edits leave placed orders
    untouched.
    """

    product_id = Identifier(required=True)
    variant_id = Identifier()
    vendor_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    sku = String(max_length=50)
    variant_label = String(max_length=160)
    image_url = String(max_length=500)

    @classmethod
    def of(cls, product, variant_id=None):
        variant = product.find_variant(variant_id)
        return cls(
            product_id=str(product.id),
            variant_id=str(variant.id) if variant else None,
            vendor_id=str(product.vendor_id),
            name=product.name,
            sku=(variant.sku if variant and variant.sku else product.sku),
            variant_label=variant.label if variant else None,
            image_url=product.primary_image_url,
        )


@kasuwa.value_object(part_of="Order")
class OrderPricing:
    """Money summary of an order. ``total`` is always derived, never supplied."""

    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    tax_amount = Float(default=0.0)
    discount_amount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="NGN")

    @invariant.post
    def amounts_cannot_be_negative(self):
        for name in ("subtotal", "shipping_cost", "tax_amount", "discount_amount", "total"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValidationError({name: [f"{name.replace('_', ' ').capitalize()} cannot be negative"]})

    @invariant.post
    def total_must_add_up(self):
        expected = (self.subtotal or 0) + (self.shipping_cost or 0) + (self.tax_amount or 0) - (self.discount_amount or 0)
        if not money_equal(self.total, expected):
            raise ValidationError({"total": ["Total must equal subtotal + shipping + tax - discount"]})

    @classmethod
    def compute(cls, subtotal, shipping_cost=0.0, tax_amount=0.0, discount_amount=0.0, currency="NGN"):
        subtotal = round_money(subtotal)
        shipping_cost = round_money(shipping_cost)
        tax_amount = round_money(tax_amount)
        discount_amount = round_money(discount_amount)
        if discount_amount > subtotal + shipping_cost + tax_amount:
            raise ValidationError({"discount_amount": ["Discount cannot exceed the order amount"]})

        return cls(
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            total=round_money(subtotal + shipping_cost + tax_amount - discount_amount),
            currency=currency,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@kasuwa.entity(part_of="Order")
class OrderItem:
    product = ValueObject(ProductSnapshot, required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)

    @invariant.post
    def total_price_matches_quantity(self):
        if self.unit_price is None or self.quantity is None or self.total_price is None:
            return
        if not money_equal(self.total_price, self.unit_price * self.quantity):
            raise ValidationError({"total_price": ["Total price must equal unit price times quantity"]})


@kasuwa.entity(part_of="Order")
class OrderTracking:
    """One entry of the append-only tracking log."""

    status = String(choices=OrderStatus, required=True)
    status_date = DateTime(required=True)
    notes = String(max_length=500)
    tracking_number = String(max_length=100)
    location = String(max_length=200)
    updated_by = String(max_length=100)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@kasuwa.aggregate
class Order:
    customer_id = Identifier(required=True)
    order_number = String(required=True, max_length=20, unique=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    tracking = HasMany(OrderTracking)
    pricing = ValueObject(OrderPricing, required=True)
    shipping_address = String(required=True, max_length=500)
    billing_address = String(max_length=500)
    shipping_method = String(max_length=50)
    tracking_number = String(max_length=100)
    notes = Text()
    estimated_delivery_date = DateTime()
    actual_delivery_date = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        order_number,
        lines,
        pricing,
        shipping_address,
        billing_address=None,
        shipping_method=None,
        notes=None,
        estimated_delivery_date=None,
    ):
        """Create a Pending order from already validated lines.

        Args:
            lines: iterable of ``(ProductSnapshot, quantity, unit_price)``.
            pricing: an ``OrderPricing`` computed from the same lines.
        """
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            pricing=pricing,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            shipping_method=shipping_method,
            notes=notes,
            estimated_delivery_date=estimated_delivery_date,
            created_at=now,
            updated_at=now,
        )

        for snapshot, quantity, unit_price in lines:
            order.add_items(
                OrderItem(
                    product=snapshot,
                    quantity=quantity,
                    unit_price=round_money(unit_price),
                    total_price=round_money(unit_price * quantity),
                )
            )

        order.add_tracking(
            OrderTracking(
                status=OrderStatus.PENDING.value,
                status_date=now,
                notes="Order created",
                updated_by=str(customer_id),
            )
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                vendor_ids=json.dumps(order.vendor_ids),
                product_ids=json.dumps(order.product_ids),
                item_count=sum(item.quantity for item in order.items),
                subtotal=pricing.subtotal,
                shipping_cost=pricing.shipping_cost,
                tax_amount=pricing.tax_amount,
                discount_amount=pricing.discount_amount,
                total=pricing.total,
                currency=pricing.currency,
                status=OrderStatus.PENDING.value,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def vendor_ids(self) -> list[str]:
        return sorted({str(item.product.vendor_id) for item in self.items})

    @property
    def product_ids(self) -> list[str]:
        return sorted({str(item.product.product_id) for item in self.items})

    def has_vendor(self, vendor_id) -> bool:
        return str(vendor_id) in self.vendor_ids

    def stock_lines(self) -> list[tuple[str, str | None, int]]:
        """``(product_id, variant_id, quantity)`` for every item."""
        return [
            (
                str(item.product.product_id),
                str(item.product.variant_id) if item.product.variant_id else None,
                item.quantity,
            )
            for item in self.items
        ]

    def tracking_history(self) -> list:
        return sorted(self.tracking, key=lambda entry: entry.status_date)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if not can_transition(current, target_status):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _transition(self, target_status, notes=None, updated_by=None, tracking_number=None, location=None):
        self._assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target_status.value
            if tracking_number:
                self.tracking_number = tracking_number
            if target_status == OrderStatus.DELIVERED:
                self.actual_delivery_date = now
            self.updated_at = now

        self.add_tracking(
            OrderTracking(
                status=target_status.value,
                status_date=now,
                notes=notes,
                tracking_number=tracking_number,
                location=location,
                updated_by=updated_by,
            )
        )

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target_status.value,
                notes=notes,
                tracking_number=self.tracking_number,
                location=location,
                updated_by=updated_by,
                changed_at=now,
            )
        )

        if target_status == OrderStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    product_ids=json.dumps(self.product_ids),
                    delivered_at=now,
                )
            )

    def update_status(self, new_status, notes=None, tracking_number=None, location=None, updated_by=None):
        """Move the order along its lifecycle. Cancelling requires ``notes`` as the reason."""
        target = OrderStatus(new_status)
        if target == OrderStatus.CANCELLED:
            self.cancel(reason=notes, cancelled_by=updated_by)
            return

        self._transition(
            target,
            notes=notes or f"Status updated from {self.status} to {target.value}",
            updated_by=updated_by,
            tracking_number=tracking_number,
            location=location,
        )

    def confirm_payment(self):
        """A Pending order becomes Confirmed once its payment completes."""
        self._transition(
            OrderStatus.CONFIRMED,
            notes="Payment completed successfully",
            updated_by=SYSTEM_ACTOR,
        )

    def mark_refunded(self, notes=None, updated_by=SYSTEM_ACTOR):
        self._transition(OrderStatus.REFUNDED, notes=notes or "Payment refunded", updated_by=updated_by)

    def cancel(self, reason, cancelled_by=None):
        """Cancel before shipping. The caller is responsible for restocking."""
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        current = OrderStatus(self.status)
        if current not in CANCELLABLE_STATES:
            raise ValidationError({"status": [f"Cannot cancel an order in {current.value} status"]})

        now = datetime.now(UTC)
        self._transition(
            OrderStatus.CANCELLED,
            notes=f"Order cancelled: {reason}",
            updated_by=cancelled_by,
        )
        with atomic_change(self):
            self.cancellation_reason = reason
            self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def update_tracking(self, tracking_number, location=None, notes=None, updated_by=None):
        """Record a carrier tracking number without changing status."""
        current = OrderStatus(self.status)
        if current in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ValidationError({"status": [f"Cannot update tracking of an order in {current.value} status"]})

        now = datetime.now(UTC)
        self.tracking_number = tracking_number
        self.updated_at = now
        self.add_tracking(
            OrderTracking(
                status=current.value,
                status_date=now,
                notes=notes or "Tracking information updated",
                tracking_number=tracking_number,
                location=location,
                updated_by=updated_by,
            )
        )

        self.raise_(
            OrderTrackingUpdated(
                order_id=str(self.id),
                status=current.value,
                tracking_number=tracking_number,
                location=location,
                updated_by=updated_by,
                updated_at=now,
            )
        )
