"""Price, stock and availability maintenance — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from kasuwa.catalogue.product import Product
from kasuwa.domain import kasuwa, logger


@kasuwa.command(part_of="Product")
class ChangeProductPrice:
    product_id: Identifier(required=True)
    price: Float(required=True)


@kasuwa.command(part_of="Product")
class AdjustStock:
    """Set stock to ``quantity`` or move it by ``delta``."""

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer()
    delta: Integer()
    reason: String(max_length=200)


@kasuwa.command(part_of="Product")
class ActivateProduct:
    product_id: Identifier(required=True)


@kasuwa.command(part_of="Product")
class DeactivateProduct:
    product_id: Identifier(required=True)


@kasuwa.command_handler(part_of=Product)
class ProductLifecycleHandler:
    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.price)
        repo.add(product)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(
            quantity=command.quantity,
            delta=command.delta,
            variant_id=command.variant_id,
            reason=command.reason,
        )
        repo.add(product)
        logger.info(
            "stock_adjusted",
            product_id=str(product.id),
            variant_id=command.variant_id,
            stock_quantity=product.stock_quantity,
        )

    @handle(ActivateProduct)
    def activate(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.activate()
        repo.add(product)

    @handle(DeactivateProduct)
    def deactivate(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.deactivate()
        repo.add(product)
