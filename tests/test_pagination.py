"""
Tests for `domain/pagination.py`.

Covers contract rules:
- total_pages = ceil(total_count / page_size).
- has_previous / has_next derive from the current page.
- Paging metadata survives mapping.
"""

from __future__ import annotations

import pytest

from domain.pagination import PaginatedResult, paginate


@pytest.mark.parametrize(
    ("total_count", "page_size", "expected_pages"),
    [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 5, 5)],
)
def test_total_pages(total_count: int, page_size: int, expected_pages: int) -> None:
    page = PaginatedResult(items=(), total_count=total_count, current_page=1, page_size=page_size)

    assert page.total_pages == expected_pages


def test_previous_and_next_flags() -> None:
    first = PaginatedResult(items=(1, 2), total_count=5, current_page=1, page_size=2)
    middle = PaginatedResult(items=(3, 4), total_count=5, current_page=2, page_size=2)
    last = PaginatedResult(items=(5,), total_count=5, current_page=3, page_size=2)

    assert (first.has_previous, first.has_next) == (False, True)
    assert (middle.has_previous, middle.has_next) == (True, True)
    assert (last.has_previous, last.has_next) == (True, False)


def test_empty_result_has_no_pages() -> None:
    page = PaginatedResult.empty()

    assert page.items == ()
    assert page.total_pages == 0
    assert page.has_next is False
    assert page.has_previous is False


def test_invalid_metadata_is_rejected() -> None:
    with pytest.raises(ValueError):
        PaginatedResult(items=(), total_count=0, current_page=0, page_size=10)

    with pytest.raises(ValueError):
        PaginatedResult(items=(), total_count=0, current_page=1, page_size=0)

    with pytest.raises(ValueError):
        PaginatedResult(items=(), total_count=-1, current_page=1, page_size=10)


def test_paginate_slices_and_counts() -> None:
    page = paginate(range(1, 24), page=3, page_size=10)

    assert page.items == (21, 22, 23)
    assert page.total_count == 23
    assert page.total_pages == 3
    assert page.has_next is False


def test_paginate_past_the_end_is_empty_but_keeps_count() -> None:
    page = paginate([1, 2, 3], page=5, page_size=2)

    assert page.items == ()
    assert page.total_count == 3
    assert page.current_page == 5


def test_map_keeps_metadata() -> None:
    page = paginate(["a", "b", "c"], page=1, page_size=2).map(str.upper)

    assert page.items == ("A", "B")
    assert page.total_count == 3
    assert page.page_size == 2
