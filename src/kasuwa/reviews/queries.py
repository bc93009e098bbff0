"""Review listings."""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from kasuwa.reviews.review import Review
from kasuwa.shared.paging import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page


def approved_reviews_for(product_id, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    """Approved reviews of a product, newest first."""
    if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError({"page": [f"Page must be at least 1 and page size between 1 and {MAX_PAGE_SIZE}"]})

    result = (
        current_domain.repository_for(Review)
        ._dao.query.filter(product_id=str(product_id), is_approved=True)
        .order_by("-created_at")
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return Page.of(result, page, page_size)
