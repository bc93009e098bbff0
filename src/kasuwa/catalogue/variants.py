"""Variant and image management — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from kasuwa.catalogue.product import Product
from kasuwa.domain import kasuwa


@kasuwa.command(part_of="Product")
class AddVariant:
    product_id: Identifier(required=True)
    name: String(required=True, max_length=50)
    value: String(required=True, max_length=100)
    price_adjustment: Float(default=0.0)
    stock_quantity: Integer(default=0)
    sku: String(max_length=50)


@kasuwa.command(part_of="Product")
class AddProductImage:
    product_id: Identifier(required=True)
    url: String(required=True, max_length=500)
    alt_text: String(max_length=255)
    is_primary: Boolean(default=False)


@kasuwa.command_handler(part_of=Product)
class ManageVariantsHandler:
    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        variant = product.add_variant(
            name=command.name,
            value=command.value,
            price_adjustment=command.price_adjustment,
            stock_quantity=command.stock_quantity,
            sku=command.sku,
        )
        repo.add(product)
        return str(variant.id)

    @handle(AddProductImage)
    def add_image(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        image = product.add_image(
            url=command.url,
            alt_text=command.alt_text,
            is_primary=command.is_primary or False,
        )
        repo.add(product)
        return str(image.id)
