"""
In-memory sale repository.

Implements the SaleRepository contract over a dictionary. Sales are stored and
returned as deep copies so callers go through the same load / mutate / persist
cycle as with a real database: mutating a loaded sale has no effect until
`update` is called.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, List, Optional
from uuid import UUID

from domain.errors import ConcurrencyConflictError, InvalidStateTransitionError, NotFoundError
from domain.pagination import PaginatedResult, paginate
from domain.sale import Sale, SaleStatus
from repositories.sale_repository import (
    ORDER_BY_CUSTOMER_NAME,
    ORDER_BY_SALE_NUMBER,
    ORDER_BY_TOTAL_AMOUNT,
    SaleQuery,
)

logger = logging.getLogger(__name__)

_SORT_KEYS: Dict[str, Callable[[Sale], object]] = {
    ORDER_BY_SALE_NUMBER: lambda sale: sale.sale_number,
    ORDER_BY_TOTAL_AMOUNT: lambda sale: sale.total_amount.amount,
    ORDER_BY_CUSTOMER_NAME: lambda sale: sale.customer.name,
}


def _sale_date_key(sale: Sale) -> object:
    return sale.sale_date


def _matches(sale: Sale, query: SaleQuery) -> bool:
    if query.customer_id is not None and sale.customer.id != query.customer_id:
        return False
    if query.branch_id is not None and sale.branch.id != query.branch_id:
        return False
    if query.status is not None and sale.status is not query.status:
        return False
    if query.start_date is not None and sale.sale_date < query.start_date:
        return False
    if query.end_date is not None and sale.sale_date > query.end_date:
        return False
    if query.sale_number and query.sale_number.strip():
        if query.sale_number.lower() not in sale.sale_number.lower():
            return False
    if query.customer_name and query.customer_name.strip():
        if query.customer_name.lower() not in sale.customer.name.lower():
            return False
    return True


class InMemorySaleRepository:
    def __init__(self) -> None:
        self._sales: Dict[UUID, Sale] = {}
        # Guards the check-and-swap in update() when used behind a threaded server.
        self._lock = Lock()

    def create(self, sale: Sale) -> Sale:
        with self._lock:
            if sale.id in self._sales:
                raise InvalidStateTransitionError(f"Sale {sale.id} already exists")
            if any(s.sale_number == sale.sale_number for s in self._sales.values()):
                raise InvalidStateTransitionError(f"Sale with number {sale.sale_number} already exists")
            sale.mark_persisted(1)
            self._sales[sale.id] = copy.deepcopy(sale)
        logger.debug("Stored sale", extra={"sale_id": str(sale.id), "version": sale.version})
        return sale

    def get_by_id(self, sale_id: UUID) -> Optional[Sale]:
        stored = self._sales.get(sale_id)
        return copy.deepcopy(stored) if stored is not None else None

    def get_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        for stored in self._sales.values():
            if stored.sale_number == sale_number:
                return copy.deepcopy(stored)
        return None

    def update(self, sale: Sale) -> Sale:
        with self._lock:
            stored = self._sales.get(sale.id)
            if stored is None:
                raise NotFoundError(f"Sale with ID {sale.id} not found")
            if stored.version != sale.version:
                raise ConcurrencyConflictError(
                    f"Sale {sale.sale_number} was modified concurrently "
                    f"(stored version {stored.version}, loaded version {sale.version})"
                )
            sale.mark_persisted(sale.version + 1)
            self._sales[sale.id] = copy.deepcopy(sale)
        return sale

    def delete(self, sale_id: UUID) -> bool:
        with self._lock:
            return self._sales.pop(sale_id, None) is not None

    def get_paginated(self, query: SaleQuery) -> PaginatedResult[Sale]:
        matching = [sale for sale in self._sales.values() if _matches(sale, query)]
        key = _SORT_KEYS.get(query.order_by, _sale_date_key)
        matching.sort(key=key, reverse=query.descending)
        page = paginate(matching, query.page, query.page_size)
        return page.map(copy.deepcopy)

    def list_by_customer(self, customer_id: UUID) -> List[Sale]:
        return self._select(lambda sale: sale.customer.id == customer_id)

    def list_by_branch(self, branch_id: UUID) -> List[Sale]:
        return self._select(lambda sale: sale.branch.id == branch_id)

    def list_by_date_range(self, start_date: datetime, end_date: datetime) -> List[Sale]:
        return self._select(lambda sale: start_date <= sale.sale_date <= end_date)

    def list_active(self) -> List[Sale]:
        return self._select(lambda sale: sale.status is SaleStatus.ACTIVE)

    def _select(self, predicate: Callable[[Sale], bool]) -> List[Sale]:
        selected = [sale for sale in self._sales.values() if predicate(sale)]
        selected.sort(key=_sale_date_key, reverse=True)
        return [copy.deepcopy(sale) for sale in selected]


__all__ = ["InMemorySaleRepository"]
