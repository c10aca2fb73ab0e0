"""
Sale service: application operations over the Sale aggregate.

Every mutation is a read-modify-write cycle against a SaleRepository:
load the aggregate, mutate it in memory, persist it. The repository's version
check rejects a write that raced with another one.

Caller-level policies enforced here (not by the aggregate):
- Sale numbers are unique.
- The last item of a sale cannot be removed.
- A sale can only be cancelled while Active and within the cancellation window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from domain.errors import InvalidStateTransitionError, NotFoundError
from domain.money import Money
from domain.pagination import PaginatedResult
from domain.projection import SaleItemProjection, project_item
from domain.sale import Sale
from domain.sale_item import SaleItem
from domain.specifications import (
    DEFAULT_MAX_CANCELLATION_DAYS,
    can_be_cancelled,
    can_have_item_removed,
    is_cancelled,
    product_exists_in_sale,
)
from repositories.sale_repository import SaleQuery, SaleRepository
from services.sale_commands import (
    AddItemToSaleCommand,
    CancelSaleCommand,
    CreateSaleCommand,
    ModifySaleItemCommand,
    RemoveSaleItemCommand,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AddItemResult:
    """
    sale: the persisted sale
    item: the item that now holds the product (the existing one when merged)
    merged: True if the product was already on the sale and its quantity grew
    """
    sale: Sale
    item: SaleItem
    merged: bool


@dataclass(frozen=True, slots=True)
class ModifyItemResult:
    sale: Sale
    item: SaleItem
    previous_quantity: int
    previous_unit_price: Money
    previous_discount_percentage: Decimal
    previous_total_amount: Money

    @property
    def quantity_changed(self) -> bool:
        return self.previous_quantity != self.item.quantity

    @property
    def price_changed(self) -> bool:
        return self.previous_unit_price != self.item.unit_price

    @property
    def discount_changed(self) -> bool:
        return self.previous_discount_percentage != self.item.discount_percentage


@dataclass(frozen=True, slots=True)
class RemoveItemResult:
    sale: Sale
    removed_item: SaleItemProjection


@dataclass(frozen=True, slots=True)
class CancelSaleResult:
    sale: Sale
    reason: Optional[str]


def _load(repository: SaleRepository, sale_id: UUID) -> Sale:
    sale = repository.get_by_id(sale_id)
    if sale is None:
        raise NotFoundError(f"Sale with ID {sale_id} not found")
    return sale


def create_sale(repository: SaleRepository, command: CreateSaleCommand) -> Sale:
    """
    Create and persist a new sale.

    Items naming the same product are merged into one line (the aggregate's add
    rule), so the merged quantity must still fit the per-product limit.
    """

    if repository.get_by_sale_number(command.sale_number) is not None:
        logger.warning("Duplicate sale number rejected", extra={"sale_number": command.sale_number})
        raise InvalidStateTransitionError(f"Sale with number {command.sale_number} already exists")

    currency = command.currency.upper()
    sale = Sale(command.sale_number, command.customer_ref(), command.branch_ref(), currency=currency)
    for item in command.items:
        sale.add_item(item.product_ref(), item.quantity, item.money(currency))

    created = repository.create(sale)
    logger.info(
        "Sale created",
        extra={
            "sale_id": str(created.id),
            "sale_number": created.sale_number,
            "total_amount": str(created.total_amount.amount),
            "items": len(created.items),
        },
    )
    return created


def get_sale(repository: SaleRepository, sale_id: UUID) -> Sale:
    return _load(repository, sale_id)


def list_sales(repository: SaleRepository, query: SaleQuery) -> PaginatedResult[Sale]:
    """Filtered, ordered page of sales. `query` is already validated."""

    return repository.get_paginated(query)


def delete_sale(repository: SaleRepository, sale_id: UUID) -> None:
    if not repository.delete(sale_id):
        raise NotFoundError(f"Sale with ID {sale_id} not found")
    logger.info("Sale deleted", extra={"sale_id": str(sale_id)})


def add_item_to_sale(repository: SaleRepository, command: AddItemToSaleCommand) -> AddItemResult:
    sale = _load(repository, command.sale_id)
    if is_cancelled(sale):
        raise InvalidStateTransitionError(f"Cannot add items to cancelled sale {sale.sale_number}")

    merged = product_exists_in_sale(sale, command.item.product_id)
    item = sale.add_item(
        command.item.product_ref(),
        command.item.quantity,
        command.item.money(command.currency),
    )
    updated = repository.update(sale)

    logger.info(
        "Item added to sale",
        extra={
            "sale_id": str(updated.id),
            "item_id": str(item.id),
            "product_id": str(item.product.id),
            "quantity": item.quantity,
            "merged": merged,
        },
    )
    return AddItemResult(sale=updated, item=item, merged=merged)


def modify_sale_item(repository: SaleRepository, command: ModifySaleItemCommand) -> ModifyItemResult:
    sale = _load(repository, command.sale_id)
    if is_cancelled(sale):
        raise InvalidStateTransitionError(f"Cannot modify items in cancelled sale {sale.sale_number}")

    item = sale.find_item(command.item_id)
    if item is None:
        raise NotFoundError(f"Item with ID {command.item_id} not found in sale {sale.sale_number}")

    previous_quantity = item.quantity
    previous_unit_price = item.unit_price
    previous_discount = item.discount_percentage
    previous_total = item.total_amount

    if command.quantity is not None:
        sale.update_item_quantity(command.item_id, command.quantity)
    if command.unit_price is not None:
        sale.update_item_price(command.item_id, Money(command.unit_price, command.currency.upper()))

    updated = repository.update(sale)
    logger.info(
        "Sale item modified",
        extra={
            "sale_id": str(updated.id),
            "item_id": str(item.id),
            "previous_quantity": previous_quantity,
            "quantity": item.quantity,
            "discount_percentage": str(item.discount_percentage),
        },
    )
    return ModifyItemResult(
        sale=updated,
        item=item,
        previous_quantity=previous_quantity,
        previous_unit_price=previous_unit_price,
        previous_discount_percentage=previous_discount,
        previous_total_amount=previous_total,
    )


def remove_sale_item(repository: SaleRepository, command: RemoveSaleItemCommand) -> RemoveItemResult:
    sale = _load(repository, command.sale_id)
    if is_cancelled(sale):
        raise InvalidStateTransitionError(f"Cannot remove items from cancelled sale {sale.sale_number}")

    item = sale.find_item(command.item_id)
    if item is None:
        raise NotFoundError(f"Item with ID {command.item_id} not found in sale {sale.sale_number}")

    if not can_have_item_removed(sale):
        raise InvalidStateTransitionError(
            f"Cannot remove the last item from sale {sale.sale_number}. A sale must have at least one item"
        )

    removed = project_item(item)
    sale.remove_item(command.item_id)
    updated = repository.update(sale)

    logger.info(
        "Item removed from sale",
        extra={
            "sale_id": str(updated.id),
            "item_id": str(removed.item_id),
            "total_amount": str(updated.total_amount.amount),
        },
    )
    return RemoveItemResult(sale=updated, removed_item=removed)


def cancel_sale(
    repository: SaleRepository,
    command: CancelSaleCommand,
    *,
    max_cancellation_days: int = DEFAULT_MAX_CANCELLATION_DAYS,
) -> CancelSaleResult:
    sale = _load(repository, command.sale_id)
    if is_cancelled(sale):
        raise InvalidStateTransitionError(f"Sale {sale.sale_number} is already cancelled")
    if not can_be_cancelled(sale, max_cancellation_days):
        logger.warning(
            "Sale outside cancellation window",
            extra={"sale_id": str(sale.id), "max_cancellation_days": max_cancellation_days},
        )
        raise InvalidStateTransitionError(
            f"Sale {sale.sale_number} cannot be cancelled. "
            f"Sales older than {max_cancellation_days} days are closed"
        )

    sale.cancel()
    updated = repository.update(sale)
    logger.info("Sale cancelled", extra={"sale_id": str(updated.id), "reason": command.reason})
    return CancelSaleResult(sale=updated, reason=command.reason)


def reactivate_sale(repository: SaleRepository, sale_id: UUID) -> Sale:
    sale = _load(repository, sale_id)
    sale.reactivate()
    updated = repository.update(sale)
    logger.info("Sale reactivated", extra={"sale_id": str(updated.id)})
    return updated


__all__ = [
    "AddItemResult",
    "ModifyItemResult",
    "RemoveItemResult",
    "CancelSaleResult",
    "create_sale",
    "get_sale",
    "list_sales",
    "delete_sale",
    "add_item_to_sale",
    "modify_sale_item",
    "remove_sale_item",
    "cancel_sale",
    "reactivate_sale",
]
