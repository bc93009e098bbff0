"""Cart item management — commands and handler.

Every change that raises a line's quantity is checked against the live
product first, so a cart never holds more than can be bought.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from kasuwa.cart.cart import Cart
from kasuwa.cart.queries import find_cart_for
from kasuwa.catalogue.product import Product
from kasuwa.domain import kasuwa


@kasuwa.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)


@kasuwa.command(part_of="Cart")
class UpdateCartItemQuantity:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True)


@kasuwa.command(part_of="Cart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@kasuwa.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


def _check_purchasable(product_id, quantity, variant_id=None):
    product = current_domain.repository_for(Product).get(product_id)
    if not product.is_active:
        raise ValidationError({"product_id": ["Product is not available"]})

    if variant_id:
        variant = product.find_variant(variant_id)
        if variant is None:
            raise ValidationError({"variant_id": ["Product variant not found"]})
        if not variant.is_active:
            raise ValidationError({"variant_id": ["Product variant is not available"]})

    if product.enforces_stock:
        available = product.available_quantity(variant_id)
        if available < quantity:
            raise ValidationError({"quantity": [f"Insufficient stock: {available} available, {quantity} requested"]})


def _existing_cart(customer_id) -> Cart:
    cart = find_cart_for(customer_id)
    if cart is None:
        raise ObjectNotFoundError(f"Cart for customer {customer_id} does not exist.")
    return cart


@kasuwa.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = find_cart_for(command.customer_id, create=True)

        existing = cart.line_for(command.product_id, command.variant_id)
        merged_quantity = command.quantity + (existing.quantity if existing else 0)
        _check_purchasable(command.product_id, merged_quantity, command.variant_id)

        item = cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            variant_id=command.variant_id,
        )
        current_domain.repository_for(Cart).add(cart)
        return str(item.id)

    @handle(UpdateCartItemQuantity)
    def update_quantity(self, command):
        cart = _existing_cart(command.customer_id)
        item = cart.find_item(command.item_id)
        if command.new_quantity >= 1:
            _check_purchasable(item.product_id, command.new_quantity, item.variant_id)

        cart.update_item_quantity(
            item_id=command.item_id,
            new_quantity=command.new_quantity,
        )
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = _existing_cart(command.customer_id)
        cart.remove_item(item_id=command.item_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart_for(command.customer_id)
        if cart is None or cart.is_empty:
            return
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
