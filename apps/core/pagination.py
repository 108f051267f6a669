"""Page/limit pagination shared by every list endpoint."""
from dataclasses import dataclass
from math import ceil
from typing import Any, List

from .exceptions import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page:
    items: List[Any]
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    def pagination(self) -> dict:
        return {
            'current_page': self.current_page,
            'total_pages': self.total_pages,
            'total_items': self.total_items,
            'items_per_page': self.items_per_page,
        }


def page_request(page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> PageRequest:
    """Validate page/limit; limit is clamped to MAX_LIMIT."""
    if page < 1:
        raise ValidationError.for_field('page', "Page must be a positive integer")
    if limit < 1:
        raise ValidationError.for_field('limit', "Limit must be a positive integer")
    return PageRequest(page=page, limit=min(limit, MAX_LIMIT))


def paginate(queryset, request: PageRequest, transform=None) -> Page:
    """Slice a queryset (or list) and wrap it with pagination metadata."""
    total = len(queryset) if isinstance(queryset, list) else queryset.count()
    rows = list(queryset[request.offset:request.offset + request.limit])
    if transform is not None:
        rows = [transform(row) for row in rows]
    return Page(
        items=rows,
        current_page=request.page,
        total_pages=ceil(total / request.limit) if total else 0,
        total_items=total,
        items_per_page=request.limit,
    )
