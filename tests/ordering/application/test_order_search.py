"""Application tests for order search over the order summary view."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from kasuwa.ordering.search import OrderSearchCriteria, search_orders
from kasuwa.ordering.status import UpdateOrderStatus


@pytest.fixture
def orders(create_product, place_order):
    tote = create_product(name="Ankara Tote Bag", price=3500.0, vendor_id="vendor-001", stock_quantity=50)
    kaftan = create_product(name="Adire Kaftan", price=45000.0, vendor_id="vendor-002", stock_quantity=50)
    return [
        place_order((tote, 1), customer_id="cust-a"),
        place_order((tote, 2), customer_id="cust-a"),
        place_order((kaftan, 1), customer_id="cust-b"),
        place_order((tote, 1), (kaftan, 1), customer_id="cust-c"),
        place_order((tote, 3), customer_id="cust-b"),
    ]


class TestCriteriaValidation:
    def test_page_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrderSearchCriteria(page=0)

    def test_page_size_is_bounded(self):
        with pytest.raises(ValidationError):
            OrderSearchCriteria(page_size=101)

    def test_unknown_sort_field(self):
        with pytest.raises(ValidationError):
            OrderSearchCriteria(sort_by="colour")

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            OrderSearchCriteria(status="Lost")


class TestFilters:
    def test_no_filters_returns_everything(self, orders):
        page = search_orders(OrderSearchCriteria())
        assert page.total_count == 5

    def test_by_customer(self, orders):
        page = search_orders(OrderSearchCriteria(customer_id="cust-a"))
        assert {s.order_id for s in page.items} == {orders[0].id, orders[1].id}

    def test_by_vendor(self, orders):
        page = search_orders(OrderSearchCriteria(vendor_id="vendor-002"))
        assert {s.order_id for s in page.items} == {orders[2].id, orders[3].id}

    def test_by_status(self, orders):
        current_domain.process(UpdateOrderStatus(order_id=orders[4].id, status="Confirmed"), asynchronous=False)
        page = search_orders(OrderSearchCriteria(status="Confirmed"))
        assert [s.order_id for s in page.items] == [orders[4].id]

    def test_by_order_number_fragment(self, orders):
        page = search_orders(OrderSearchCriteria(order_number=orders[2].order_number))
        assert [s.order_id for s in page.items] == [orders[2].id]

    def test_by_amount_range(self, orders):
        page = search_orders(OrderSearchCriteria(min_amount=5000.0, max_amount=46000.0))
        assert {s.order_id for s in page.items} == {orders[1].id, orders[2].id, orders[4].id}

    def test_by_date_range(self, orders):
        now = datetime.now(UTC)
        assert search_orders(OrderSearchCriteria(date_from=now - timedelta(hours=1))).total_count == 5
        assert search_orders(OrderSearchCriteria(date_to=now - timedelta(hours=1))).total_count == 0

    def test_naive_dates_are_treated_as_utc(self, orders):
        naive = datetime.now(UTC).replace(tzinfo=None) - timedelta(hours=1)
        assert search_orders(OrderSearchCriteria(date_from=naive)).total_count == 5


class TestSortingAndPaging:
    def test_sort_by_amount_ascending(self, orders):
        page = search_orders(OrderSearchCriteria(sort_by="amount", descending=False))
        totals = [s.total for s in page.items]
        assert totals == sorted(totals)

    def test_newest_first_by_default(self, orders):
        page = search_orders(OrderSearchCriteria())
        assert page.items[0].order_id == orders[-1].id

    def test_pagination(self, orders):
        page = search_orders(OrderSearchCriteria(page=2, page_size=2))
        assert len(page.items) == 2
        assert page.total_count == 5
        assert page.total_pages == 3
        assert page.current_page == 2
        assert page.has_next_page is True
        assert page.has_previous_page is True

    def test_last_page(self, orders):
        page = search_orders(OrderSearchCriteria(page=3, page_size=2))
        assert len(page.items) == 1
        assert page.has_next_page is False

    def test_pages_cover_every_order_once(self, orders):
        seen = []
        for number in (1, 2, 3):
            seen += [s.order_id for s in search_orders(OrderSearchCriteria(page=number, page_size=2)).items]
        assert sorted(seen) == sorted(o.id for o in orders)
