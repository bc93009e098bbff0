"""Order cancellation — command and handler.

Cancelling puts every unit the order took back into stock within the same
unit of work.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from kasuwa.catalogue.product import Product
from kasuwa.catalogue.queries import load_product
from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.order import Order


@kasuwa.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(max_length=100)


def restock_order(order):
    """Release the stock reserved by ``order`` back to its products."""
    repo = current_domain.repository_for(Product)
    products = {}
    for product_id, variant_id, quantity in order.stock_lines():
        product = products.get(product_id) or load_product(product_id)
        if product is None:
            logger.warning("restock_skipped_missing_product", order_id=str(order.id), product_id=product_id)
            continue
        products[product_id] = product
        product.release_stock(quantity, variant_id)

    for product in products.values():
        repo.add(product)


@kasuwa.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by)
        restock_order(order)
        repo.add(order)

        logger.info("order_cancelled", order_id=str(order.id), reason=command.reason)
