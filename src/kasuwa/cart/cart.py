"""Cart aggregate — one mutable cart per customer.

Cart lines only reference catalogue products; prices are resolved from the
live Product at read time, so a cart total moves when a vendor edits a price.
Checkout consumes the lines and clears the cart.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from kasuwa.cart.events import CartCleared, CartItemAdded, CartItemQuantityUpdated, CartItemRemoved
from kasuwa.domain import kasuwa


def _same_variant(a, b) -> bool:
    return (str(a) if a else None) == (str(b) if b else None)


@kasuwa.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@kasuwa.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError(f"Cart item {item_id} does not exist.")
        return item

    def line_for(self, product_id, variant_id=None):
        """The line holding this (product, variant) pair, if any."""
        return next(
            (
                i
                for i in self.items
                if str(i.product_id) == str(product_id) and _same_variant(i.variant_id, variant_id)
            ),
            None,
        )

    def add_item(self, product_id, quantity, variant_id=None):
        """Add a line, or increase the quantity of the matching (product, variant) line."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self.line_for(product_id, variant_id)
        if existing:
            existing.quantity = existing.quantity + quantity
            item = existing
        else:
            item = CartItem(
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity,
                added_at=now,
            )
            self.add_items(item)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                line_quantity=item.quantity,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity):
        """Set a line's quantity. Anything below 1 removes the line."""
        item = self.find_item(item_id)
        if new_quantity is None or new_quantity < 1:
            self.remove_item(item_id)
            return

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        item = self.find_item(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                product_id=str(item.product_id),
            )
        )

    def clear(self, reason="cleared"):
        count = len(self.items)
        for item in list(self.items):
            self.remove_items(item)

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                items_removed=count,
                cleared_at=now,
            )
        )
