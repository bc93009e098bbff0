"""Product aggregate root with Variant and ProductImage entities.

Products are the live catalogue that carts price against and that checkout
reserves stock from. Stock is only enforced when the product tracks
quantity and does not allow overselling.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from kasuwa.catalogue.events import (
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    ProductImageAdded,
    ProductPriceChanged,
    StockAdjusted,
    StockReleased,
    StockReserved,
    VariantAdded,
)
from kasuwa.domain import kasuwa

MAX_IMAGES = 10


@kasuwa.entity(part_of="Product")
class Variant:
    """A purchasable option of a product, e.g. ``Size: XL``."""

    name: String(required=True, max_length=50)
    value: String(required=True, max_length=100)
    price_adjustment: Float(default=0.0)
    stock_quantity: Integer(default=0)
    sku: String(max_length=50)
    is_active: Boolean(default=True)

    @property
    def label(self) -> str:
        return f"{self.name}: {self.value}"


@kasuwa.entity(part_of="Product")
class ProductImage:
    url: String(required=True, max_length=500)
    alt_text: String(max_length=255)
    is_primary: Boolean(default=False)
    display_order: Integer(default=0)


@kasuwa.aggregate
class Product:
    vendor_id: Identifier(required=True)
    name: String(required=True, max_length=200)
    description: Text()
    sku: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.01)
    stock_quantity: Integer(default=0)
    weight_kg: Float(min_value=0.0)
    is_active: Boolean(default=True)
    requires_shipping: Boolean(default=True)
    track_quantity: Boolean(default=True)
    allow_oversell: Boolean(default=False)
    variants: HasMany(Variant)
    images: HasMany(ProductImage)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def stock_cannot_be_negative_unless_oversold(self):
        if self.allow_oversell:
            return
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

    @invariant.post
    def images_cannot_exceed_maximum(self):
        if len(self.images) > MAX_IMAGES:
            raise ValidationError({"images": [f"Cannot have more than {MAX_IMAGES} images"]})

    @invariant.post
    def exactly_one_primary_image_when_images_exist(self):
        if not self.images:
            return
        primaries = [i for i in self.images if i.is_primary]
        if len(primaries) != 1:
            raise ValidationError({"images": ["Exactly one image must be marked as primary"]})

    @classmethod
    def create(
        cls,
        vendor_id,
        name,
        sku,
        price,
        stock_quantity=0,
        description=None,
        weight_kg=None,
        requires_shipping=True,
        track_quantity=True,
        allow_oversell=False,
    ):
        now = datetime.now(UTC)
        product = cls(
            vendor_id=vendor_id,
            name=name,
            sku=sku,
            price=price,
            stock_quantity=stock_quantity,
            description=description,
            weight_kg=weight_kg,
            is_active=True,
            requires_shipping=requires_shipping,
            track_quantity=track_quantity,
            allow_oversell=allow_oversell,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                vendor_id=str(vendor_id),
                name=name,
                sku=sku,
                price=price,
                stock_quantity=stock_quantity,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Lookups used by carts and checkout
    # -------------------------------------------------------------------
    @property
    def enforces_stock(self) -> bool:
        return bool(self.track_quantity) and not self.allow_oversell

    @property
    def primary_image_url(self) -> str | None:
        primary = next((i for i in self.images if i.is_primary), None)
        return primary.url if primary else None

    def find_variant(self, variant_id):
        if not variant_id:
            return None
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def _require_variant(self, variant_id):
        variant = self.find_variant(variant_id)
        if variant is None:
            raise ValidationError({"variant_id": [f"Variant {variant_id} not found on {self.name}"]})
        return variant

    def unit_price(self, variant_id=None) -> float:
        """Product price plus the variant's price adjustment."""
        variant = self.find_variant(variant_id)
        adjustment = (variant.price_adjustment or 0.0) if variant else 0.0
        return round(self.price + adjustment, 2)

    def available_quantity(self, variant_id=None) -> int:
        available = self.stock_quantity or 0
        variant = self.find_variant(variant_id)
        if variant is not None:
            available = min(available, variant.stock_quantity or 0)
        return max(available, 0)

    def availability_problem(self, quantity, variant_id=None) -> str | None:
        """Why ``quantity`` units cannot be bought right now, or None."""
        if not self.is_active:
            return "Product is no longer available"

        if variant_id:
            variant = self.find_variant(variant_id)
            if variant is None:
                return "Product variant not found"
            if not variant.is_active:
                return "Product variant is no longer available"

        if self.enforces_stock:
            available = self.available_quantity(variant_id)
            if available < quantity:
                return f"Only {available} items available"

        return None

    def shared_stock_problem(self, total_quantity) -> str | None:
        """Why ``total_quantity`` units across all variant lines exceed the product's own stock, or None."""
        if self.enforces_stock and total_quantity > (self.stock_quantity or 0):
            return f"Only {self.stock_quantity} items available"
        return None

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def reserve_stock(self, quantity, variant_id=None):
        """Take ``quantity`` units for an order being placed."""
        if not self.track_quantity:
            return

        variant = self._require_variant(variant_id) if variant_id else None
        if self.enforces_stock:
            available = self.available_quantity(variant_id)
            if available < quantity:
                raise ValidationError(
                    {"stock_quantity": [f"Insufficient stock: {available} available, {quantity} requested"]}
                )

        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock_quantity = self.stock_quantity - quantity
            if variant is not None:
                variant.stock_quantity = (variant.stock_quantity or 0) - quantity
            self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                remaining=self.stock_quantity,
                reserved_at=now,
            )
        )

    def release_stock(self, quantity, variant_id=None):
        """Put back ``quantity`` units taken by a cancelled order."""
        if not self.track_quantity:
            return

        variant = self.find_variant(variant_id)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock_quantity = self.stock_quantity + quantity
            if variant is not None:
                variant.stock_quantity = (variant.stock_quantity or 0) + quantity
            self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                remaining=self.stock_quantity,
                released_at=now,
            )
        )

    def adjust_stock(self, quantity=None, delta=None, variant_id=None, reason=None):
        """Set stock to ``quantity`` or move it by ``delta``."""
        if (quantity is None) == (delta is None):
            raise ValidationError({"stock_quantity": ["Provide either a quantity or a delta"]})

        target = self._require_variant(variant_id) if variant_id else self
        previous = target.stock_quantity or 0
        new_quantity = quantity if quantity is not None else previous + delta
        if new_quantity < 0 and not self.allow_oversell:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

        now = datetime.now(UTC)
        target.stock_quantity = new_quantity
        self.updated_at = now

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                previous_quantity=previous,
                new_quantity=new_quantity,
                reason=reason,
                adjusted_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Catalogue maintenance
    # -------------------------------------------------------------------
    def add_variant(self, name, value, price_adjustment=0.0, stock_quantity=0, sku=None):
        duplicate = next(
            (v for v in self.variants if v.name.lower() == name.lower() and v.value.lower() == value.lower()),
            None,
        )
        if duplicate is not None:
            raise ValidationError({"variants": [f"Variant {name}: {value} already exists"]})

        variant = Variant(
            name=name,
            value=value,
            price_adjustment=price_adjustment or 0.0,
            stock_quantity=stock_quantity or 0,
            sku=sku,
        )
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=str(self.id),
                variant_id=str(variant.id),
                name=name,
                value=value,
                price_adjustment=variant.price_adjustment,
                stock_quantity=variant.stock_quantity,
            )
        )
        return variant

    def add_image(self, url, alt_text=None, is_primary=False):
        with atomic_change(self):
            # First image is always primary
            if not self.images:
                is_primary = True

            if is_primary:
                for img in self.images:
                    if img.is_primary:
                        img.is_primary = False

            image = ProductImage(
                url=url,
                alt_text=alt_text,
                is_primary=is_primary,
                display_order=len(self.images),
            )
            self.add_images(image)

        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductImageAdded(
                product_id=str(self.id),
                image_id=str(image.id),
                url=url,
                is_primary=str(is_primary),
            )
        )
        return image

    def change_price(self, new_price):
        if new_price is None or new_price <= 0:
            raise ValidationError({"price": ["Price must be greater than zero"]})

        previous = self.price
        now = datetime.now(UTC)
        self.price = new_price
        self.updated_at = now

        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
                changed_at=now,
            )
        )

    def activate(self):
        if self.is_active:
            raise ValidationError({"is_active": ["Product is already active"]})

        now = datetime.now(UTC)
        self.is_active = True
        self.updated_at = now
        self.raise_(ProductActivated(product_id=str(self.id), activated_at=now))

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Product is already inactive"]})

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(ProductDeactivated(product_id=str(self.id), deactivated_at=now))
