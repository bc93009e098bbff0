"""Tests for the Product aggregate: pricing, availability and stock movements."""

import pytest
from protean.exceptions import ValidationError

from kasuwa.catalogue.events import ProductCreated, StockReleased, StockReserved
from kasuwa.catalogue.product import Product


def _product(**overrides):
    fields = {
        "vendor_id": "vendor-001",
        "name": "Ankara Tote Bag",
        "sku": "ANK-TOTE-01",
        "price": 3500.0,
        "stock_quantity": 5,
    }
    fields.update(overrides)
    return Product.create(**fields)


class TestProductCreation:
    def test_create_sets_defaults(self):
        product = _product()
        assert product.is_active is True
        assert product.requires_shipping is True
        assert product.track_quantity is True
        assert product.allow_oversell is False
        assert product.created_at is not None

    def test_create_raises_product_created(self):
        product = _product()
        assert len(product._events) == 1
        event = product._events[0]
        assert isinstance(event, ProductCreated)
        assert event.price == 3500.0
        assert event.stock_quantity == 5

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            _product(price=0.0)

    def test_name_is_required(self):
        with pytest.raises(ValidationError) as exc:
            _product(name=None)
        assert "name" in exc.value.messages


class TestUnitPrice:
    def test_unit_price_without_variant_is_product_price(self):
        assert _product().unit_price() == 3500.0

    def test_unit_price_adds_variant_adjustment(self):
        product = _product(price=45000.0)
        variant = product.add_variant("Size", "XL", price_adjustment=2500.0, stock_quantity=3)
        assert product.unit_price(variant.id) == 47500.0

    def test_unknown_variant_falls_back_to_product_price(self):
        assert _product().unit_price("missing") == 3500.0


class TestAvailability:
    def test_available_product(self):
        assert _product().availability_problem(5) is None

    def test_inactive_product(self):
        product = _product()
        product.deactivate()
        assert product.availability_problem(1) == "Product is no longer available"

    def test_too_many_units(self):
        assert _product().availability_problem(6) == "Only 5 items available"

    def test_missing_variant(self):
        assert _product().availability_problem(1, "missing") == "Product variant not found"

    def test_inactive_variant(self):
        product = _product()
        variant = product.add_variant("Colour", "Red", stock_quantity=2)
        variant.is_active = False
        assert product.availability_problem(1, variant.id) == "Product variant is no longer available"

    def test_variant_stock_limits_availability(self):
        product = _product(stock_quantity=10)
        variant = product.add_variant("Size", "M", stock_quantity=2)
        assert product.available_quantity(variant.id) == 2
        assert product.availability_problem(3, variant.id) == "Only 2 items available"

    def test_untracked_product_is_always_available(self):
        product = _product(stock_quantity=0, track_quantity=False)
        assert product.availability_problem(100) is None

    def test_oversell_product_is_always_available(self):
        product = _product(stock_quantity=0, allow_oversell=True)
        assert product.availability_problem(100) is None

    def test_shared_stock_across_variant_lines(self):
        assert _product().shared_stock_problem(5) is None
        assert _product().shared_stock_problem(6) == "Only 5 items available"
        assert _product(allow_oversell=True).shared_stock_problem(6) is None


class TestStockMovements:
    def test_reserve_decrements_stock(self):
        product = _product()
        product.reserve_stock(3)
        assert product.stock_quantity == 2
        assert isinstance(product._events[-1], StockReserved)
        assert product._events[-1].remaining == 2

    def test_reserve_more_than_available_fails(self):
        product = _product()
        with pytest.raises(ValidationError) as exc:
            product.reserve_stock(6)
        assert "Insufficient stock: 5 available, 6 requested" in str(exc.value)
        assert product.stock_quantity == 5

    def test_reserve_decrements_variant_too(self):
        product = _product(stock_quantity=10)
        variant = product.add_variant("Size", "L", stock_quantity=4)
        product.reserve_stock(3, variant.id)
        assert product.stock_quantity == 7
        assert product.find_variant(variant.id).stock_quantity == 1

    def test_oversell_product_goes_negative(self):
        product = _product(stock_quantity=1, allow_oversell=True)
        product.reserve_stock(3)
        assert product.stock_quantity == -2

    def test_untracked_product_is_not_decremented(self):
        product = _product(stock_quantity=0, track_quantity=False)
        product.reserve_stock(3)
        assert product.stock_quantity == 0

    def test_release_restores_stock(self):
        product = _product()
        product.reserve_stock(3)
        product.release_stock(3)
        assert product.stock_quantity == 5
        assert isinstance(product._events[-1], StockReleased)

    def test_adjust_stock_absolute(self):
        product = _product()
        product.adjust_stock(quantity=20, reason="Restock")
        assert product.stock_quantity == 20

    def test_adjust_stock_delta(self):
        product = _product()
        product.adjust_stock(delta=-2)
        assert product.stock_quantity == 3

    def test_adjust_stock_requires_exactly_one_mode(self):
        product = _product()
        with pytest.raises(ValidationError):
            product.adjust_stock()
        with pytest.raises(ValidationError):
            product.adjust_stock(quantity=1, delta=1)

    def test_adjust_stock_cannot_go_negative(self):
        product = _product()
        with pytest.raises(ValidationError):
            product.adjust_stock(delta=-6)


class TestCatalogueMaintenance:
    def test_duplicate_variant_rejected(self):
        product = _product()
        product.add_variant("Size", "XL")
        with pytest.raises(ValidationError):
            product.add_variant("size", "xl")

    def test_first_image_is_primary(self):
        product = _product()
        image = product.add_image("https://cdn.example.com/tote.jpg")
        assert image.is_primary is True
        assert product.primary_image_url == "https://cdn.example.com/tote.jpg"

    def test_new_primary_image_replaces_old(self):
        product = _product()
        product.add_image("https://cdn.example.com/a.jpg")
        product.add_image("https://cdn.example.com/b.jpg", is_primary=True)
        primaries = [i for i in product.images if i.is_primary]
        assert len(primaries) == 1
        assert product.primary_image_url == "https://cdn.example.com/b.jpg"

    def test_change_price(self):
        product = _product()
        product.change_price(4000.0)
        assert product.price == 4000.0

    def test_change_price_rejects_zero(self):
        with pytest.raises(ValidationError):
            _product().change_price(0)

    def test_activate_and_deactivate(self):
        product = _product()
        product.deactivate()
        assert product.is_active is False
        with pytest.raises(ValidationError):
            product.deactivate()
        product.activate()
        assert product.is_active is True
