"""Order summary — the list view behind order search.

``vendor_ids`` is stored comma-wrapped (``,v1,v2,``) so a vendor filter is a
plain substring match.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa
from kasuwa.ordering.events import OrderPlaced, OrderStatusChanged, OrderTrackingUpdated
from kasuwa.ordering.order import Order


def vendor_token(vendor_id) -> str:
    return f",{vendor_id},"


@kasuwa.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    vendor_ids = String(max_length=2000)
    status = String(required=True, max_length=20)
    item_count = Integer(default=0)
    total = Float(default=0.0)
    currency = String(max_length=3)
    tracking_number = String(max_length=100)
    created_at = DateTime()
    updated_at = DateTime()


@kasuwa.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        vendors = json.loads(event.vendor_ids) if event.vendor_ids else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                vendor_ids="," + ",".join(vendors) + "," if vendors else "",
                status=event.status,
                item_count=event.item_count,
                total=event.total,
                currency=event.currency,
                created_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.status = event.new_status
        if event.tracking_number:
            summary.tracking_number = event.tracking_number
        summary.updated_at = event.changed_at
        repo.add(summary)

    @on(OrderTrackingUpdated)
    def on_tracking_updated(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.tracking_number = event.tracking_number
        summary.updated_at = event.updated_at
        repo.add(summary)
