"""Page of results returned by listings and searches."""

import math
from dataclasses import dataclass, field

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Page:
    items: list = field(default_factory=list)
    total_count: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    current_page: int = 1

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    @classmethod
    def of(cls, result, page: int, page_size: int) -> "Page":
        """Wrap a Protean ``ResultSet`` fetched with offset/limit."""
        return cls(items=list(result.items), total_count=result.total, page_size=page_size, current_page=page)
