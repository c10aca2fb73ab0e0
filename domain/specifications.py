"""
Domain: business predicates over a Sale.

Each function answers one yes/no question for the policy checks in the service
layer. None of them mutate the sale.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from .sale import Sale, SaleStatus
from .time import as_utc, utc_now

DEFAULT_MAX_CANCELLATION_DAYS: int = 30


def is_cancelled(sale: Sale) -> bool:
    return sale.status is SaleStatus.CANCELLED


def can_be_modified(sale: Sale) -> bool:
    return sale.status is SaleStatus.ACTIVE


def product_exists_in_sale(sale: Sale, product_id: UUID) -> bool:
    return any(item.product.id == product_id for item in sale.items)


def item_exists_in_sale(sale: Sale, item_id: UUID) -> bool:
    return any(item.id == item_id for item in sale.items)


def can_be_cancelled(
    sale: Sale,
    max_days: int = DEFAULT_MAX_CANCELLATION_DAYS,
    *,
    as_of: Optional[datetime] = None,
) -> bool:
    """
    A sale can be cancelled while it is Active and not older than `max_days`.

    Compared by calendar date (UTC), inclusive: a sale exactly `max_days` days old
    is still eligible.
    """

    if sale.status is not SaleStatus.ACTIVE:
        return False

    reference = as_utc(as_of) if as_of is not None else utc_now()
    cutoff = reference.date() - timedelta(days=max_days)
    return sale.sale_date.date() >= cutoff


def can_have_item_removed(sale: Sale) -> bool:
    """Removing must not leave the sale empty, and the sale must be Active."""

    return len(sale.items) > 1 and sale.status is SaleStatus.ACTIVE


__all__ = [
    "DEFAULT_MAX_CANCELLATION_DAYS",
    "is_cancelled",
    "can_be_modified",
    "product_exists_in_sale",
    "item_exists_in_sale",
    "can_be_cancelled",
    "can_have_item_removed",
]
