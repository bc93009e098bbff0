"""Read-side views of a cart, priced against the live catalogue."""

from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from kasuwa.cart.cart import Cart
from kasuwa.catalogue.queries import load_product
from kasuwa.shared.pricing import estimate_shipping, estimate_tax, round_money
from kasuwa.utils import settings


@dataclass(frozen=True)
class CartLine:
    item_id: str
    product_id: str
    variant_id: str | None
    product_name: str | None
    variant_label: str | None
    image_url: str | None
    unit_price: float
    quantity: int
    line_total: float
    available_quantity: int
    is_available: bool


@dataclass(frozen=True)
class CartSummary:
    cart_id: str | None
    customer_id: str
    lines: list[CartLine] = field(default_factory=list)
    total_items: int = 0
    subtotal: float = 0.0
    estimated_shipping: float = 0.0
    estimated_tax: float = 0.0
    estimated_total: float = 0.0
    currency: str = settings.DEFAULT_CURRENCY
    has_unavailable_items: bool = False


@dataclass(frozen=True)
class LineCheck:
    item_id: str
    product_id: str
    variant_id: str | None
    requested_quantity: int
    available_quantity: int
    is_valid: bool
    message: str | None = None


@dataclass(frozen=True)
class CartValidation:
    is_valid: bool
    items: list[LineCheck] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)


def find_cart_for(customer_id, create=False) -> Cart | None:
    """The customer's cart; a fresh unsaved one when ``create`` is set."""
    carts = current_domain.repository_for(Cart)._dao.query.filter(customer_id=str(customer_id)).all().items
    if carts:
        return carts[0]
    return Cart.create(customer_id=customer_id) if create else None


def summarize_cart(customer_id, shipping_method=None) -> CartSummary:
    cart = find_cart_for(customer_id)
    if cart is None:
        return CartSummary(cart_id=None, customer_id=str(customer_id), currency=settings.currency())

    lines = []
    parcels = []
    for item in cart.items:
        product = load_product(item.product_id)
        if product is None:
            lines.append(
                CartLine(
                    item_id=str(item.id),
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id) if item.variant_id else None,
                    product_name=None,
                    variant_label=None,
                    image_url=None,
                    unit_price=0.0,
                    quantity=item.quantity,
                    line_total=0.0,
                    available_quantity=0,
                    is_available=False,
                )
            )
            continue

        variant = product.find_variant(item.variant_id)
        unit_price = product.unit_price(item.variant_id)
        lines.append(
            CartLine(
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                product_name=product.name,
                variant_label=variant.label if variant else None,
                image_url=product.primary_image_url,
                unit_price=unit_price,
                quantity=item.quantity,
                line_total=round_money(unit_price * item.quantity),
                available_quantity=product.available_quantity(item.variant_id),
                is_available=product.availability_problem(item.quantity, item.variant_id) is None,
            )
        )
        parcels.append((item.quantity, product.weight_kg, product.requires_shipping))

    subtotal = round_money(sum(line.line_total for line in lines))
    shipping = estimate_shipping(shipping_method, parcels)
    tax = estimate_tax(subtotal)

    return CartSummary(
        cart_id=str(cart.id),
        customer_id=str(customer_id),
        lines=lines,
        total_items=cart.total_items,
        subtotal=subtotal,
        estimated_shipping=shipping,
        estimated_tax=tax,
        estimated_total=round_money(subtotal + shipping + tax),
        currency=settings.currency(),
        has_unavailable_items=any(not line.is_available for line in lines),
    )


def validate_cart(customer_id) -> CartValidation:
    """Check every line against live stock and availability.

    Variant lines of one product also share the product's own stock count.
    The cart is valid only when it has lines and all of them pass.
    """
    cart = find_cart_for(customer_id)
    if cart is None or cart.is_empty:
        return CartValidation(is_valid=False, messages=["Your cart is empty"])

    products = {}
    for item in cart.items:
        product_id = str(item.product_id)
        if product_id not in products:
            products[product_id] = load_product(product_id)

    shared_problems = {}
    for product_id, product in products.items():
        quantities = [item.quantity for item in cart.items if str(item.product_id) == product_id]
        if product is not None and len(quantities) > 1:
            shared_problems[product_id] = product.shared_stock_problem(sum(quantities))

    checks = []
    for item in cart.items:
        product = products[str(item.product_id)]
        if product is None:
            problem = "Product is no longer available"
            available = 0
        else:
            problem = product.availability_problem(item.quantity, item.variant_id)
            problem = problem or shared_problems.get(str(item.product_id))
            available = product.available_quantity(item.variant_id)

        checks.append(
            LineCheck(
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                requested_quantity=item.quantity,
                available_quantity=available,
                is_valid=problem is None,
                message=problem,
            )
        )

    invalid = [c for c in checks if not c.is_valid]
    messages = [f"{len(invalid)} item(s) in your cart need attention"] if invalid else []
    return CartValidation(is_valid=not invalid, items=checks, messages=messages)
