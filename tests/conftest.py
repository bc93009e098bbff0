import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before the domain is first imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def kasuwa_bed():
    import kasuwa.api  # noqa: F401  # loaded before the domain traverses the package
    from kasuwa.domain import kasuwa

    bed = DomainFixture(kasuwa)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(kasuwa_bed):
    from kasuwa.domain import kasuwa
    from kasuwa.utils.db import drop_db, setup_db

    setup_db(kasuwa)

    yield

    drop_db(kasuwa)


@pytest.fixture(autouse=True)
def _ctx(kasuwa_bed):
    """Run every test in the domain context, then clean up infrastructure."""
    from kasuwa.payments.gateway import reset_gateway

    with kasuwa_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_gateway()


# ---------------------------------------------------------------------------
# Builders shared by every test package
# ---------------------------------------------------------------------------
VENDOR_ID = "vendor-001"
CUSTOMER_ID = "cust-001"
SHIPPING_ADDRESS = "12 Broad Street, Lagos Island, Lagos"


@pytest.fixture
def create_product():
    """Persist a product through the CreateProduct command and return it."""
    from protean import current_domain

    from kasuwa.catalogue.creation import CreateProduct
    from kasuwa.catalogue.product import Product

    def _create(
        name="Ankara Tote Bag",
        price=3500.0,
        stock_quantity=10,
        vendor_id=VENDOR_ID,
        sku=None,
        weight_kg=None,
        requires_shipping=True,
        track_quantity=True,
        allow_oversell=False,
    ):
        product_id = current_domain.process(
            CreateProduct(
                vendor_id=vendor_id,
                name=name,
                sku=sku or name.upper().replace(" ", "-")[:40],
                price=price,
                stock_quantity=stock_quantity,
                weight_kg=weight_kg,
                requires_shipping=requires_shipping,
                track_quantity=track_quantity,
                allow_oversell=allow_oversell,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Product).get(product_id)

    return _create


@pytest.fixture
def place_order():
    """Check out explicit ``(product, quantity[, variant_id])`` lines and return the order."""
    import json

    from protean import current_domain

    from kasuwa.ordering.checkout import PlaceOrder
    from kasuwa.ordering.order import Order

    def _place(*lines, customer_id=CUSTOMER_ID, shipping_cost=0.0, tax_amount=0.0, discount_amount=0.0):
        items = []
        for line in lines:
            product, quantity = line[0], line[1]
            variant_id = line[2] if len(line) > 2 else None
            items.append({"product_id": str(product.id), "variant_id": variant_id, "quantity": quantity})

        order_id = current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                shipping_address=SHIPPING_ADDRESS,
                shipping_cost=shipping_cost,
                tax_amount=tax_amount,
                discount_amount=discount_amount,
                items=json.dumps(items),
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _place


@pytest.fixture()
def api_app():
    """A bare app with every router and the envelope error handlers."""
    from fastapi import FastAPI

    from kasuwa.api import (
        cart_router,
        order_router,
        payment_router,
        product_router,
        register_error_handlers,
        review_router,
    )

    app = FastAPI()
    app.include_router(product_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(review_router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client(api_app):
    from fastapi.testclient import TestClient

    return TestClient(api_app)


@pytest.fixture()
def new_product(client):
    """Create a product as its vendor and return the product payload."""

    def _create(vendor_id=VENDOR_ID, **overrides):
        body = {"name": "Ankara Tote Bag", "sku": "ANK-TOTE-01", "price": 3500.0, "stock_quantity": 10}
        body.update(overrides)
        response = client.post(
            "/products",
            json=body,
            headers={"X-User-Id": vendor_id, "X-User-Role": "Vendor"},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture()
def new_order(client):
    """Place an order for explicit ``(product_id, quantity)`` lines and return the order payload."""

    def _place(*lines, customer_id=CUSTOMER_ID, shipping_cost=0.0, tax_amount=0.0):
        response = client.post(
            "/orders",
            json={
                "shipping_address": SHIPPING_ADDRESS,
                "shipping_cost": shipping_cost,
                "tax_amount": tax_amount,
                "items": [{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines],
            },
            headers={"X-User-Id": customer_id},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _place
