"""Application tests for checkout: validation, stock reservation and pricing."""

import json
import re
from datetime import date

import pytest
from protean import UnitOfWork
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.utils.globals import current_domain

from kasuwa.cart.items import AddToCart
from kasuwa.cart.queries import find_cart_for
from kasuwa.catalogue.lifecycle import ChangeProductPrice, DeactivateProduct
from kasuwa.catalogue.product import Product
from kasuwa.catalogue.variants import AddVariant
from kasuwa.ordering.checkout import PlaceOrder
from kasuwa.ordering.numbering import next_order_number
from kasuwa.ordering.order import Order

CUSTOMER_ID = "cust-001"
ADDRESS = "12 Broad Street, Lagos Island, Lagos"


def _stock(product):
    return current_domain.repository_for(Product).get(product.id).stock_quantity


def _checkout(items=None, **overrides):
    fields = {"customer_id": CUSTOMER_ID, "shipping_address": ADDRESS}
    if items is not None:
        fields["items"] = json.dumps(items)
    fields.update(overrides)
    order_id = current_domain.process(PlaceOrder(**fields), asynchronous=False)
    return current_domain.repository_for(Order).get(order_id)


class TestExplicitItems:
    def test_order_totals_across_vendors(self, create_product, place_order):
        tote = create_product(name="Ankara Tote Bag", price=3500.0, vendor_id="vendor-001")
        kaftan = create_product(name="Adire Kaftan", price=45000.0, vendor_id="vendor-002")

        order = place_order((tote, 2), (kaftan, 1), shipping_cost=1500.0, tax_amount=850.0)

        assert order.status == "Pending"
        assert order.pricing.subtotal == 52000.0
        assert order.pricing.shipping_cost == 1500.0
        assert order.pricing.tax_amount == 850.0
        assert order.pricing.discount_amount == 0.0
        assert order.pricing.total == 54350.0
        assert order.vendor_ids == ["vendor-001", "vendor-002"]

    def test_stock_is_reserved(self, create_product, place_order):
        product = create_product(stock_quantity=10)
        place_order((product, 3))
        assert _stock(product) == 7

    def test_line_prices_are_frozen(self, create_product, place_order):
        product = create_product(price=3500.0)
        order = place_order((product, 1))

        current_domain.process(ChangeProductPrice(product_id=product.id, price=9999.0), asynchronous=False)

        order = current_domain.repository_for(Order).get(order.id)
        assert order.items[0].unit_price == 3500.0
        assert order.items[0].product.name == "Ankara Tote Bag"

    def test_duplicate_lines_are_merged(self, create_product, place_order):
        product = create_product(stock_quantity=10)
        order = place_order((product, 2), (product, 3))
        assert len(order.items) == 1
        assert order.items[0].quantity == 5
        assert _stock(product) == 5

    def test_variant_line_uses_adjusted_price_and_stock(self, create_product, place_order):
        product = create_product(price=45000.0, stock_quantity=10)
        variant_id = current_domain.process(
            AddVariant(product_id=product.id, name="Size", value="XL", price_adjustment=2500.0, stock_quantity=3),
            asynchronous=False,
        )
        order = place_order((product, 2, variant_id))

        assert order.items[0].unit_price == 47500.0
        assert order.items[0].product.variant_label == "Size: XL"
        reloaded = current_domain.repository_for(Product).get(product.id)
        assert reloaded.stock_quantity == 8
        assert reloaded.find_variant(variant_id).stock_quantity == 1

    def test_default_shipping_and_tax(self, create_product):
        product = create_product(price=1000.0, weight_kg=2.0)
        order = _checkout([{"product_id": product.id, "quantity": 1}])
        # standard: 5.00 base + 2kg x 1.00/kg; tax 10%
        assert order.pricing.shipping_cost == 7.0
        assert order.pricing.tax_amount == 100.0
        assert order.pricing.total == 1107.0

    def test_discount(self, create_product, place_order):
        product = create_product(price=5000.0)
        order = place_order((product, 1), discount_amount=500.0)
        assert order.pricing.total == 4500.0


class TestAllOrNothing:
    def test_one_bad_line_rejects_the_whole_order(self, create_product):
        plenty = create_product(name="Beaded Necklace", stock_quantity=10)
        scarce = create_product(name="Aso Oke Wrapper", stock_quantity=1)

        with pytest.raises(ValidationError) as exc:
            _checkout(
                [
                    {"product_id": plenty.id, "quantity": 2},
                    {"product_id": scarce.id, "quantity": 2},
                ]
            )

        assert exc.value.messages["items"] == ["Aso Oke Wrapper: Only 1 items available"]
        assert _stock(plenty) == 10
        assert _stock(scarce) == 1
        assert current_domain.repository_for(Order)._dao.query.all().total == 0

    def test_every_problem_is_reported(self, create_product):
        inactive = create_product(name="Old Stock")
        current_domain.process(DeactivateProduct(product_id=inactive.id), asynchronous=False)

        with pytest.raises(ValidationError) as exc:
            _checkout(
                [
                    {"product_id": inactive.id, "quantity": 1},
                    {"product_id": "missing-product", "quantity": 1},
                ]
            )

        problems = exc.value.messages["items"]
        assert "Old Stock: Product is no longer available" in problems
        assert "Product missing-product: Product not found" in problems

    def test_sequential_checkouts_cannot_oversell(self, create_product, place_order):
        product = create_product(stock_quantity=5)

        place_order((product, 3), customer_id="cust-a")
        with pytest.raises(ValidationError):
            place_order((product, 3), customer_id="cust-b")

        assert _stock(product) == 2

    def test_oversell_product_can_go_negative(self, create_product, place_order):
        product = create_product(stock_quantity=1, allow_oversell=True)
        place_order((product, 3))
        assert _stock(product) == -2

    def test_untracked_product_is_not_decremented(self, create_product, place_order):
        product = create_product(stock_quantity=0, track_quantity=False)
        place_order((product, 4))
        assert _stock(product) == 0

    def test_malformed_items_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                PlaceOrder(customer_id=CUSTOMER_ID, shipping_address=ADDRESS, items="not json"),
                asynchronous=False,
            )

    def test_zero_quantity_rejected(self, create_product):
        product = create_product()
        with pytest.raises(ValidationError):
            _checkout([{"product_id": product.id, "quantity": 0}])

    def test_price_drift_is_rejected(self, create_product):
        product = create_product(price=3500.0)
        with pytest.raises(ValidationError) as exc:
            _checkout([{"product_id": product.id, "quantity": 2}], expected_subtotal=6000.0)
        assert "Prices have changed" in str(exc.value)
        assert _stock(product) == 10

    def test_matching_expected_subtotal_is_accepted(self, create_product):
        product = create_product(price=3500.0)
        order = _checkout([{"product_id": product.id, "quantity": 2}], expected_subtotal=7000.0)
        assert order.pricing.subtotal == 7000.0


class TestConcurrentReservation:
    def test_stale_product_write_is_rejected(self, create_product, place_order):
        product = create_product(stock_quantity=5)
        repo = current_domain.repository_for(Product)
        stale = repo.get(product.id)

        place_order((product, 3))

        stale.reserve_stock(3)
        with pytest.raises(ExpectedVersionError):
            with UnitOfWork():
                repo.add(stale)

        assert _stock(product) == 2


class TestCheckoutFromCart:
    def test_cart_is_used_and_cleared(self, create_product):
        product = create_product(stock_quantity=10)
        current_domain.process(
            AddToCart(customer_id=CUSTOMER_ID, product_id=product.id, quantity=2),
            asynchronous=False,
        )

        order = _checkout(shipping_cost=0.0, tax_amount=0.0)

        assert order.items[0].quantity == 2
        assert _stock(product) == 8
        assert find_cart_for(CUSTOMER_ID).is_empty

    def test_empty_cart_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _checkout()
        assert exc.value.messages["cart"] == ["Your cart is empty"]

    def test_failed_checkout_keeps_the_cart(self, create_product):
        product = create_product(stock_quantity=2)
        current_domain.process(
            AddToCart(customer_id=CUSTOMER_ID, product_id=product.id, quantity=2),
            asynchronous=False,
        )
        current_domain.process(ChangeProductPrice(product_id=product.id, price=4000.0), asynchronous=False)

        with pytest.raises(ValidationError):
            _checkout(expected_subtotal=7000.0)

        assert find_cart_for(CUSTOMER_ID).total_items == 2
        assert _stock(product) == 2


class TestOrderNumbers:
    def test_format(self, create_product, place_order):
        order = place_order((create_product(), 1))
        assert re.fullmatch(r"ORD-\d{8}-\d{4}", order.order_number)

    def test_sequence_increments(self, create_product, place_order):
        product = create_product()
        first = place_order((product, 1))
        second = place_order((product, 1))
        assert first.order_number.endswith("-0001")
        assert second.order_number.endswith("-0002")

    def test_next_number_without_orders(self):
        assert next_order_number(date(2026, 3, 14)) == "ORD-20260314-0001"

    def test_sequence_continues_past_four_digits(self, create_product, place_order):
        product = create_product()
        order = place_order((product, 1))
        day_prefix = order.order_number[: -len("0001")]

        order.order_number = f"{day_prefix}9999"
        current_domain.repository_for(Order).add(order)

        assert next_order_number() == f"{day_prefix}10000"
        assert place_order((product, 1)).order_number == f"{day_prefix}10000"
        assert next_order_number() == f"{day_prefix}10001"
