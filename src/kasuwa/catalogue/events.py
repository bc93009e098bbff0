"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from kasuwa.domain import kasuwa


@kasuwa.event(part_of="Product")
class ProductCreated:
    """A vendor listed a new product."""

    __version__ = 1

    product_id: Identifier(required=True)
    vendor_id: Identifier(required=True)
    name: String(required=True)
    sku: String(required=True)
    price: Float(required=True)
    stock_quantity: Integer(required=True)
    created_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class VariantAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    name: String(required=True)
    value: String(required=True)
    price_adjustment: Float(required=True)
    stock_quantity: Integer(required=True)


@kasuwa.event(part_of="Product")
class ProductImageAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    image_id: Identifier(required=True)
    url: String(required=True)
    is_primary: String(required=True)


@kasuwa.event(part_of="Product")
class ProductPriceChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    previous_price: Float(required=True)
    new_price: Float(required=True)
    changed_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class StockAdjusted:
    """Stock was set or corrected by the vendor."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    previous_quantity: Integer(required=True)
    new_quantity: Integer(required=True)
    reason: String()
    adjusted_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class StockReserved:
    """Stock was taken by a placed order."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer(required=True)
    remaining: Integer(required=True)
    reserved_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class StockReleased:
    """Stock was returned by a cancelled order."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer(required=True)
    remaining: Integer(required=True)
    released_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class ProductActivated:
    __version__ = 1

    product_id: Identifier(required=True)
    activated_at: DateTime(required=True)


@kasuwa.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id: Identifier(required=True)
    deactivated_at: DateTime(required=True)
