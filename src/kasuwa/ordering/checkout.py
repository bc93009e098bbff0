"""Checkout — turns a cart (or an explicit item list) into a placed order.

All lines are validated against the live catalogue before anything is
changed. Stock reservation, the new order and the cleared cart are then
committed together by the command's unit of work, so a failed checkout
leaves no trace.
"""

import json
from collections import OrderedDict

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from kasuwa.cart.cart import Cart
from kasuwa.cart.queries import find_cart_for
from kasuwa.catalogue.product import Product
from kasuwa.catalogue.queries import load_product
from kasuwa.domain import kasuwa, logger
from kasuwa.ordering.numbering import next_order_number
from kasuwa.ordering.order import Order, OrderPricing, ProductSnapshot
from kasuwa.shared.pricing import estimate_shipping, estimate_tax, money_equal, round_money
from kasuwa.utils import settings


@kasuwa.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address = String(required=True, max_length=500)
    billing_address = String(max_length=500)
    shipping_method = String(max_length=50, default="standard")
    shipping_cost = Float(min_value=0.0)  # derived from the shipping method when omitted
    tax_amount = Float(min_value=0.0)  # derived from the tax rate when omitted
    discount_amount = Float(min_value=0.0, default=0.0)
    expected_subtotal = Float()  # reject when live prices drifted from this
    notes = Text()
    items = Text()  # JSON: [{product_id, variant_id, quantity}]; the cart is used when empty


def _parse_items(raw) -> list[tuple[str, str | None, int]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError({"items": ["Items must be a JSON list"]}) from exc

    if not isinstance(data, list):
        raise ValidationError({"items": ["Items must be a JSON list"]})

    lines = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValidationError({"items": ["Each item must be an object"]})
        quantity = entry.get("quantity")
        if not entry.get("product_id") or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"items": ["Each item needs a product_id and a quantity of at least 1"]})
        variant_id = entry.get("variant_id")
        lines.append((str(entry["product_id"]), str(variant_id) if variant_id else None, quantity))
    return lines


def merge_demand(lines) -> "OrderedDict[tuple[str, str | None], int]":
    """Sum quantities per (product, variant), keeping first-seen order."""
    demand = OrderedDict()
    for product_id, variant_id, quantity in lines:
        key = (str(product_id), str(variant_id) if variant_id else None)
        demand[key] = demand.get(key, 0) + quantity
    return demand


def check_demand(demand) -> tuple[dict[str, Product], list[str]]:
    """Load every product and collect a message for each line that cannot be bought."""
    products: dict[str, Product] = {}
    problems: list[str] = []

    for (product_id, variant_id), quantity in demand.items():
        product = products.get(product_id) or load_product(product_id)
        if product is None:
            problems.append(f"Product {product_id}: Product not found")
            continue
        products[product_id] = product

        problem = product.availability_problem(quantity, variant_id)
        if problem is not None:
            problems.append(f"{product.name}: {problem}")

    # Several variant lines can share one product-level stock count
    for product_id, product in products.items():
        keys = [key for key in demand if key[0] == product_id]
        if len(keys) < 2:
            continue
        problem = product.shared_stock_problem(sum(demand[key] for key in keys))
        if problem is not None:
            problems.append(f"{product.name}: {problem}")

    return products, problems


@kasuwa.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = None
        if command.items:
            requested = _parse_items(command.items)
        else:
            cart = find_cart_for(command.customer_id)
            if cart is None or cart.is_empty:
                raise ValidationError({"cart": ["Your cart is empty"]})
            requested = [(item.product_id, item.variant_id, item.quantity) for item in cart.items]

        if not requested:
            raise ValidationError({"items": ["An order needs at least one item"]})

        demand = merge_demand(requested)
        products, problems = check_demand(demand)
        if problems:
            logger.info("checkout_rejected", customer_id=str(command.customer_id), problems=problems)
            raise ValidationError({"items": problems})

        lines = []
        parcels = []
        for (product_id, variant_id), quantity in demand.items():
            product = products[product_id]
            lines.append((ProductSnapshot.of(product, variant_id), quantity, product.unit_price(variant_id)))
            parcels.append((quantity, product.weight_kg, product.requires_shipping))

        subtotal = round_money(sum(unit_price * quantity for _, quantity, unit_price in lines))
        if command.expected_subtotal is not None and not money_equal(subtotal, command.expected_subtotal):
            raise ValidationError(
                {"expected_subtotal": [f"Prices have changed since the cart was displayed (now {subtotal:.2f})"]}
            )

        shipping_cost = command.shipping_cost
        if shipping_cost is None:
            shipping_cost = estimate_shipping(command.shipping_method, parcels)
        tax_amount = command.tax_amount
        if tax_amount is None:
            tax_amount = estimate_tax(subtotal)

        pricing = OrderPricing.compute(
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            discount_amount=command.discount_amount or 0.0,
            currency=settings.currency(),
        )

        product_repo = current_domain.repository_for(Product)
        for (product_id, variant_id), quantity in demand.items():
            products[product_id].reserve_stock(quantity, variant_id)
        for product in products.values():
            product_repo.add(product)

        order = Order.place(
            customer_id=command.customer_id,
            order_number=next_order_number(),
            lines=lines,
            pricing=pricing,
            shipping_address=command.shipping_address,
            billing_address=command.billing_address,
            shipping_method=command.shipping_method,
            notes=command.notes,
        )
        current_domain.repository_for(Order).add(order)

        if cart is not None:
            cart.clear(reason="checkout")
            current_domain.repository_for(Cart).add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=pricing.total,
        )
        return str(order.id)
