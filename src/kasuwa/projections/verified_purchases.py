"""VerifiedPurchases — which customers have received which products.

A row per (order, product) is written when an order is delivered. Review
submission reads it to flag verified purchases.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa
from kasuwa.ordering.events import OrderDelivered
from kasuwa.ordering.order import Order


@kasuwa.projection
class VerifiedPurchases:
    vp_id = Identifier(identifier=True, required=True)
    customer_id = String(required=True)
    product_id = String(required=True)
    order_id = String(required=True)
    delivered_at = DateTime(required=True)


@kasuwa.projector(projector_for=VerifiedPurchases, aggregates=[Order])
class VerifiedPurchasesProjector:
    @on(OrderDelivered)
    def on_order_delivered(self, event):
        repo = current_domain.repository_for(VerifiedPurchases)
        for product_id in json.loads(event.product_ids):
            repo.add(
                VerifiedPurchases(
                    vp_id=f"{event.order_id}:{product_id}",
                    customer_id=str(event.customer_id),
                    product_id=str(product_id),
                    order_id=str(event.order_id),
                    delivered_at=event.delivered_at,
                )
            )


def has_verified_purchase(customer_id, product_id) -> bool:
    found = (
        current_domain.repository_for(VerifiedPurchases)
        ._dao.query.filter(customer_id=str(customer_id), product_id=str(product_id))
        .all()
        .items
    )
    return bool(found)
