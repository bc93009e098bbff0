"""Product creation — command and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from kasuwa.catalogue.product import Product
from kasuwa.domain import kasuwa


@kasuwa.command(part_of="Product")
class CreateProduct:
    vendor_id: Identifier(required=True)
    name: String(required=True, max_length=200)
    sku: String(required=True, max_length=50)
    price: Float(required=True)
    stock_quantity: Integer(default=0)
    description: Text()
    weight_kg: Float()
    requires_shipping: Boolean(default=True)
    track_quantity: Boolean(default=True)
    allow_oversell: Boolean(default=False)


@kasuwa.command_handler(part_of=Product)
class CreateProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            vendor_id=command.vendor_id,
            name=command.name,
            sku=command.sku,
            price=command.price,
            stock_quantity=command.stock_quantity or 0,
            description=command.description,
            weight_kg=command.weight_kg,
            requires_shipping=command.requires_shipping,
            track_quantity=command.track_quantity,
            allow_oversell=command.allow_oversell,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
