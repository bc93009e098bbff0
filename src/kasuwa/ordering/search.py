"""Order search — filter, sort and paginate the order summary view."""

from dataclasses import dataclass
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from kasuwa.ordering.order import OrderStatus
from kasuwa.projections.order_summary import OrderSummary, vendor_token
from kasuwa.shared.paging import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page

SORT_FIELDS = {
    "date": "created_at",
    "amount": "total",
    "status": "status",
}


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class OrderSearchCriteria:
    order_number: str | None = None
    status: str | None = None
    customer_id: str | None = None
    vendor_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    sort_by: str = "date"
    descending: bool = True
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        errors = {}
        if self.page < 1:
            errors["page"] = ["Page must be at least 1"]
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            errors["page_size"] = [f"Page size must be between 1 and {MAX_PAGE_SIZE}"]
        if self.sort_by not in SORT_FIELDS:
            errors["sort_by"] = [f"Sort by one of: {', '.join(SORT_FIELDS)}"]
        if self.status is not None and self.status not in {s.value for s in OrderStatus}:
            errors["status"] = [f"Unknown order status {self.status}"]
        if errors:
            raise ValidationError(errors)

        object.__setattr__(self, "date_from", _aware(self.date_from))
        object.__setattr__(self, "date_to", _aware(self.date_to))

    def filters(self) -> dict:
        filters = {}
        if self.order_number:
            filters["order_number__contains"] = self.order_number
        if self.status:
            filters["status"] = self.status
        if self.customer_id:
            filters["customer_id"] = str(self.customer_id)
        if self.vendor_id:
            filters["vendor_ids__contains"] = vendor_token(self.vendor_id)
        if self.date_from:
            filters["created_at__gte"] = self.date_from
        if self.date_to:
            filters["created_at__lte"] = self.date_to
        if self.min_amount is not None:
            filters["total__gte"] = self.min_amount
        if self.max_amount is not None:
            filters["total__lte"] = self.max_amount
        return filters


def search_orders(criteria: OrderSearchCriteria) -> Page:
    query = current_domain.repository_for(OrderSummary)._dao.query
    filters = criteria.filters()
    if filters:
        query = query.filter(**filters)

    sort_field = SORT_FIELDS[criteria.sort_by]
    result = (
        query.order_by(f"-{sort_field}" if criteria.descending else sort_field)
        .offset((criteria.page - 1) * criteria.page_size)
        .limit(criteria.page_size)
        .all()
    )
    return Page.of(result, criteria.page, criteria.page_size)
