"""Domain events for the Order aggregate.

Projectors build the order search view and the verified-purchase lookup
from these events.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from kasuwa.domain import kasuwa


@kasuwa.event(part_of="Order")
class OrderPlaced:
    """A customer checked out and the order was created in Pending status."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    vendor_ids = Text(required=True)  # JSON: list of vendor ids
    product_ids = Text(required=True)  # JSON: list of product ids
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    shipping_cost = Float()
    tax_amount = Float()
    discount_amount = Float()
    total = Float(required=True)
    currency = String(required=True)
    status = String(required=True)
    placed_at = DateTime(required=True)


@kasuwa.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status and a tracking entry was appended."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    notes = String()
    tracking_number = String()
    location = String()
    updated_by = String()
    changed_at = DateTime(required=True)


@kasuwa.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before shipping; its stock goes back on sale."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = String()
    cancelled_at = DateTime(required=True)


@kasuwa.event(part_of="Order")
class OrderDelivered:
    """The order reached the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON: list of product ids
    delivered_at = DateTime(required=True)


@kasuwa.event(part_of="Order")
class OrderTrackingUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    status = String(required=True)
    tracking_number = String(required=True)
    location = String()
    updated_by = String()
    updated_at = DateTime(required=True)
