"""
Domain: read-only projections of a Sale.

Facts such as the total item count are computed on demand from the aggregate for
response shaping; they are never stored on the entity.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from .identity import BranchRef, CustomerRef, ProductRef
from .money import Money
from .sale import Sale, SaleStatus
from .sale_item import SaleItem


@dataclass(frozen=True, slots=True)
class SaleItemProjection:
    item_id: UUID
    product: ProductRef
    quantity: int
    unit_price: Money
    discount_percentage: Decimal
    total_amount: Money


@dataclass(frozen=True, slots=True)
class SaleProjection:
    sale_id: UUID
    sale_number: str
    sale_date: datetime
    customer: CustomerRef
    branch: BranchRef
    status: SaleStatus
    total_amount: Money
    created_at: datetime
    cancelled_at: Optional[datetime]
    items: Tuple[SaleItemProjection, ...]
    total_items_count: int
    has_discounted_items: bool
    is_eligible_for_bulk_discount: bool

    @property
    def currency(self) -> str:
        return self.total_amount.currency


def project_item(item: SaleItem) -> SaleItemProjection:
    return SaleItemProjection(
        item_id=item.id,
        product=item.product,
        quantity=item.quantity,
        unit_price=item.unit_price,
        discount_percentage=item.discount_percentage,
        total_amount=item.total_amount,
    )


def project_sale(sale: Sale) -> SaleProjection:
    return SaleProjection(
        sale_id=sale.id,
        sale_number=sale.sale_number,
        sale_date=sale.sale_date,
        customer=sale.customer,
        branch=sale.branch,
        status=sale.status,
        total_amount=sale.total_amount,
        created_at=sale.created_at,
        cancelled_at=sale.cancelled_at,
        items=tuple(project_item(item) for item in sale.items),
        total_items_count=sale.get_total_items_count(),
        has_discounted_items=sale.has_discounted_items(),
        is_eligible_for_bulk_discount=sale.is_eligible_for_bulk_discount(),
    )


__all__ = ["SaleItemProjection", "SaleProjection", "project_item", "project_sale"]
