"""
Tests for `repositories/sale_repository.py` (SaleQuery).

Covers contract rules:
- page >= 1 and 1 <= page_size <= 100.
- start_date <= end_date, both UTC timestamps.
- order_by / order_direction are restricted; direction is case-insensitive.
- Every problem is reported at once.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from domain.errors import ValidationFailedError
from domain.sale import SaleStatus
from repositories.sale_repository import SaleQuery


def test_defaults_are_valid() -> None:
    query = SaleQuery()

    assert query.page == 1
    assert query.page_size == 10
    assert query.order_by == "SaleDate"
    assert query.descending is True
    assert query.offset == 0


def test_offset_and_direction() -> None:
    query = SaleQuery(page=3, page_size=20, order_direction="ASC")

    assert query.offset == 40
    assert query.descending is False


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"page": 0}, "Page must be greater than 0"),
        ({"page_size": 0}, "Page size must be between 1 and 100"),
        ({"page_size": 101}, "Page size must be between 1 and 100"),
        ({"order_by": "Price"}, "OrderBy must be one of"),
        ({"order_direction": "up"}, "OrderDirection must be 'asc' or 'desc'"),
        ({"status": "Open"}, "Status must be one of"),
        ({"start_date": datetime(2025, 1, 1)}, "start_date must be a UTC timestamp"),
        (
            {"end_date": datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=2)))},
            "end_date must be a UTC timestamp",
        ),
    ],
)
def test_invalid_parameters_are_rejected(kwargs: dict, message: str) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        SaleQuery(**kwargs)

    assert any(message in error for error in exc_info.value.errors)


def test_start_date_after_end_date_is_rejected() -> None:
    with pytest.raises(ValidationFailedError, match="Start date must be before or equal to end date"):
        SaleQuery(
            start_date=datetime(2025, 2, 1, tzinfo=timezone.utc),
            end_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )


def test_all_errors_are_collected() -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        SaleQuery(page=0, page_size=500, order_by="Nope")

    assert len(exc_info.value.errors) == 3


def test_status_filter_accepts_enum() -> None:
    assert SaleQuery(status=SaleStatus.CANCELLED).status is SaleStatus.CANCELLED
