"""Order status and tracking updates — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.cancellation import restock_order
from kasuwa.ordering.order import Order, OrderStatus


@kasuwa.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    notes = String(max_length=500)
    tracking_number = String(max_length=100)
    location = String(max_length=200)
    updated_by = String(max_length=100)


@kasuwa.command(part_of="Order")
class UpdateOrderTracking:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)
    location = String(max_length=200)
    notes = String(max_length=500)
    updated_by = String(max_length=100)


@kasuwa.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        order.update_status(
            new_status=command.status,
            notes=command.notes,
            tracking_number=command.tracking_number,
            location=command.location,
            updated_by=command.updated_by,
        )
        if order.status == OrderStatus.CANCELLED.value:
            restock_order(order)

        repo.add(order)
        logger.info("order_status_updated", order_id=str(order.id), previous=previous, status=order.status)

    @handle(UpdateOrderTracking)
    def update_tracking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_tracking(
            tracking_number=command.tracking_number,
            location=command.location,
            notes=command.notes,
            updated_by=command.updated_by,
        )
        repo.add(order)
