"""
Domain: paginated result container.

`total_pages = ceil(total_count / page_size)`; `has_previous` and `has_next`
are derived from the current page, never stored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class PaginatedResult(Generic[T]):
    items: Tuple[T, ...]
    total_count: int
    current_page: int
    page_size: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.current_page < 1:
            raise ValueError("current_page must be >= 1")
        if self.total_count < 0:
            raise ValueError("total_count must be >= 0")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @staticmethod
    def empty(current_page: int = 1, page_size: int = 10) -> "PaginatedResult":
        return PaginatedResult(items=(), total_count=0, current_page=current_page, page_size=page_size)

    def map(self, mapper: Callable[[T], R]) -> "PaginatedResult[R]":
        return map_page(self, mapper)


def map_page(page: PaginatedResult[T], mapper: Callable[[T], R]) -> PaginatedResult[R]:
    """Transform the items of a page, keeping its paging metadata."""

    return PaginatedResult(
        items=tuple(mapper(item) for item in page.items),
        total_count=page.total_count,
        current_page=page.current_page,
        page_size=page.page_size,
    )


def paginate(items: Iterable[T], page: int, page_size: int) -> PaginatedResult[T]:
    """Slice an already filtered and ordered sequence into one page."""

    all_items = list(items)
    start = (page - 1) * page_size
    return PaginatedResult(
        items=tuple(all_items[start:start + page_size]),
        total_count=len(all_items),
        current_page=page,
        page_size=page_size,
    )


__all__ = ["PaginatedResult", "map_page", "paginate"]
