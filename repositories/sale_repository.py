"""
Sale repository contract (persistence boundary).

This module defines *what* a sale store must do; it does not talk to a database.
Implementations:
- repositories.supabase_sale_repository.SupabaseSaleRepository (production)
- repositories.memory_sale_repository.InMemorySaleRepository (tests, local runs)

Query parameters are validated when the SaleQuery is built, so an invalid request
never reaches a store.

Optimistic concurrency: `update` succeeds only if the stored version equals
`sale.version`; otherwise it raises ConcurrencyConflictError. On success the
version is incremented and recorded on the sale via `mark_persisted`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Protocol
from uuid import UUID

from domain.errors import ValidationFailedError
from domain.pagination import PaginatedResult
from domain.sale import Sale, SaleStatus

MAX_PAGE_SIZE: int = 100
DEFAULT_PAGE_SIZE: int = 10

ORDER_BY_SALE_DATE = "SaleDate"
ORDER_BY_TOTAL_AMOUNT = "TotalAmount"
ORDER_BY_SALE_NUMBER = "SaleNumber"
ORDER_BY_CUSTOMER_NAME = "CustomerName"

VALID_ORDER_BY = (
    ORDER_BY_SALE_DATE,
    ORDER_BY_TOTAL_AMOUNT,
    ORDER_BY_SALE_NUMBER,
    ORDER_BY_CUSTOMER_NAME,
)
VALID_ORDER_DIRECTIONS = ("asc", "desc")


def _is_utc(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() == timedelta(0)


@dataclass(frozen=True, slots=True)
class SaleQuery:
    """
    Filter, sort and paging criteria for `get_paginated`.

    Substring filters (sale_number, customer_name) are case-insensitive.
    start_date / end_date bound sale_date inclusively.
    """

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    customer_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    status: Optional[SaleStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sale_number: Optional[str] = None
    customer_name: Optional[str] = None
    order_by: str = ORDER_BY_SALE_DATE
    order_direction: str = "desc"

    def __post_init__(self) -> None:
        errors: List[str] = []

        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            errors.append("Page must be greater than 0")
        if (
            isinstance(self.page_size, bool)
            or not isinstance(self.page_size, int)
            or not 1 <= self.page_size <= MAX_PAGE_SIZE
        ):
            errors.append(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if value is not None and not _is_utc(value):
                errors.append(f"{name} must be a UTC timestamp")
        if (
            self.start_date is not None
            and self.end_date is not None
            and _is_utc(self.start_date)
            and _is_utc(self.end_date)
            and self.start_date > self.end_date
        ):
            errors.append("Start date must be before or equal to end date")

        if self.status is not None and not isinstance(self.status, SaleStatus):
            errors.append("Status must be one of: " + ", ".join(s.value for s in SaleStatus))

        if self.order_by not in VALID_ORDER_BY:
            errors.append("OrderBy must be one of: " + ", ".join(VALID_ORDER_BY))
        if not isinstance(self.order_direction, str) or self.order_direction.lower() not in VALID_ORDER_DIRECTIONS:
            errors.append("OrderDirection must be 'asc' or 'desc'")

        if errors:
            raise ValidationFailedError(errors)

    @property
    def descending(self) -> bool:
        return self.order_direction.lower() == "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class SaleRepository(Protocol):
    def create(self, sale: Sale) -> Sale:
        ...

    def get_by_id(self, sale_id: UUID) -> Optional[Sale]:
        ...

    def get_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        ...

    def update(self, sale: Sale) -> Sale:
        ...

    def delete(self, sale_id: UUID) -> bool:
        ...

    def get_paginated(self, query: SaleQuery) -> PaginatedResult[Sale]:
        ...

    def list_by_customer(self, customer_id: UUID) -> List[Sale]:
        ...

    def list_by_branch(self, branch_id: UUID) -> List[Sale]:
        ...

    def list_by_date_range(self, start_date: datetime, end_date: datetime) -> List[Sale]:
        ...

    def list_active(self) -> List[Sale]:
        ...


__all__ = [
    "MAX_PAGE_SIZE",
    "DEFAULT_PAGE_SIZE",
    "VALID_ORDER_BY",
    "VALID_ORDER_DIRECTIONS",
    "ORDER_BY_SALE_DATE",
    "ORDER_BY_TOTAL_AMOUNT",
    "ORDER_BY_SALE_NUMBER",
    "ORDER_BY_CUSTOMER_NAME",
    "SaleQuery",
    "SaleRepository",
]
