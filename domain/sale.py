"""
Domain: Sale aggregate root.

A Sale owns its items. Every item mutation goes through the Sale so these rules
hold after each call:

- total_amount equals the sum of the current item totals. It is recomputed from
  scratch after each mutation and never set directly.
- At most one item per product id. Adding a product that is already present
  increases that item's quantity (merge); the combined quantity is limited to 20.
- No item mutation is allowed while the sale is Cancelled.
- Status moves Active -> Cancelled (sets cancelled_at) or Cancelled -> Active
  (clears cancelled_at). A self-transition is rejected.
- A sale has a single currency; every item price must use it.

A rejected operation leaves the aggregate unchanged.

"Must keep at least one item" is not an aggregate rule; callers enforce it
before calling remove_item (see domain.specifications.can_have_item_removed).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple
from uuid import UUID, uuid4

from .errors import (
    InvalidArgumentError,
    InvalidStateTransitionError,
    NotFoundError,
    QuantityOutOfRangeError,
)
from .identity import BranchRef, CustomerRef, ProductRef
from .money import DEFAULT_CURRENCY, Money
from .sale_item import MAX_ITEM_QUANTITY, MIN_ITEM_QUANTITY, SaleItem
from .time import require_utc_timestamp, utc_now


class SaleStatus(str, Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"


class Sale:
    def __init__(
        self,
        sale_number: str,
        customer: CustomerRef,
        branch: BranchRef,
        *,
        currency: str = DEFAULT_CURRENCY,
        sale_date: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        if not isinstance(sale_number, str) or not sale_number.strip():
            raise InvalidArgumentError("sale_number is required")
        if not isinstance(customer, CustomerRef):
            raise InvalidArgumentError("customer is required")
        if not isinstance(branch, BranchRef):
            raise InvalidArgumentError("branch is required")

        now = utc_now()
        sale_date = sale_date if sale_date is not None else now
        created_at = created_at if created_at is not None else now
        require_utc_timestamp("sale_date", sale_date)
        require_utc_timestamp("created_at", created_at)

        self._id: UUID = uuid4()
        self._sale_number = sale_number
        self._sale_date = sale_date
        self._customer = customer
        self._branch = branch
        self._status = SaleStatus.ACTIVE
        self._items: List[SaleItem] = []
        self._total_amount = Money.zero(currency)
        self._created_at = created_at
        self._cancelled_at: Optional[datetime] = None
        self._version = 0

    @classmethod
    def restore(
        cls,
        *,
        sale_id: UUID,
        sale_number: str,
        sale_date: datetime,
        customer: CustomerRef,
        branch: BranchRef,
        status: SaleStatus,
        items: Iterable[SaleItem] = (),
        currency: str = DEFAULT_CURRENCY,
        created_at: datetime,
        cancelled_at: Optional[datetime] = None,
        version: int = 0,
    ) -> "Sale":
        """
        Rebuild a sale from its full stored state.

        Used by repositories (and test builders). The total is recomputed from the
        items; the stored total is never trusted.
        """

        if not isinstance(sale_id, UUID):
            raise InvalidArgumentError("sale id must be a UUID")
        status = SaleStatus(status)
        if status is SaleStatus.CANCELLED and cancelled_at is None:
            raise InvalidArgumentError("a cancelled sale requires cancelled_at")
        if status is SaleStatus.ACTIVE and cancelled_at is not None:
            raise InvalidArgumentError("an active sale cannot have cancelled_at")
        if cancelled_at is not None:
            require_utc_timestamp("cancelled_at", cancelled_at)

        sale = cls(
            sale_number,
            customer,
            branch,
            currency=currency,
            sale_date=sale_date,
            created_at=created_at,
        )
        item_list = list(items)
        seen_products = set()
        for item in item_list:
            if item.product.id in seen_products:
                raise InvalidArgumentError(f"product {item.product.id} appears on more than one item")
            seen_products.add(item.product.id)
            sale._require_currency(item.unit_price)

        sale._id = sale_id
        sale._status = status
        sale._cancelled_at = cancelled_at
        sale._items = item_list
        sale._version = version
        sale._recalculate_total_amount()
        return sale

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def sale_number(self) -> str:
        return self._sale_number

    @property
    def sale_date(self) -> datetime:
        return self._sale_date

    @property
    def customer(self) -> CustomerRef:
        return self._customer

    @property
    def branch(self) -> BranchRef:
        return self._branch

    @property
    def status(self) -> SaleStatus:
        return self._status

    @property
    def items(self) -> Tuple[SaleItem, ...]:
        return tuple(self._items)

    @property
    def total_amount(self) -> Money:
        return self._total_amount

    @property
    def currency(self) -> str:
        return self._total_amount.currency

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def cancelled_at(self) -> Optional[datetime]:
        return self._cancelled_at

    @property
    def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------
    # Item operations
    # ------------------------------------------------------------------

    def find_item(self, item_id: UUID) -> Optional[SaleItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def find_item_by_product(self, product_id: UUID) -> Optional[SaleItem]:
        for item in self._items:
            if item.product.id == product_id:
                return item
        return None

    def add_item(self, product: ProductRef, quantity: int, unit_price: Money) -> SaleItem:
        """
        Add a product to the sale.

        If the product is already on the sale, its item absorbs the new quantity and
        that same item is returned. The 20-unit limit applies to the combined
        quantity, not to the increment.
        """

        self._require_active("Cannot add items to a cancelled sale")
        if not isinstance(product, ProductRef):
            raise InvalidArgumentError("product is required")
        self._require_currency(unit_price)

        existing = self.find_item_by_product(product.id)
        if existing is not None:
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise QuantityOutOfRangeError("Quantity must be an integer")
            if quantity < MIN_ITEM_QUANTITY:
                raise QuantityOutOfRangeError("Quantity must be greater than zero")
            combined = existing.quantity + quantity
            if combined > MAX_ITEM_QUANTITY:
                raise QuantityOutOfRangeError(
                    f"Cannot have more than {MAX_ITEM_QUANTITY} identical items in a sale"
                )
            existing.update_quantity(combined)
            item = existing
        else:
            item = SaleItem.create(product, quantity, unit_price)
            self._items.append(item)

        self._recalculate_total_amount()
        return item

    def remove_item(self, item_id: UUID) -> SaleItem:
        self._require_active("Cannot remove items from a cancelled sale")
        item = self._require_item(item_id)
        self._items.remove(item)
        self._recalculate_total_amount()
        return item

    def update_item_quantity(self, item_id: UUID, new_quantity: int) -> SaleItem:
        self._require_active("Cannot update items in a cancelled sale")
        item = self._require_item(item_id)
        item.update_quantity(new_quantity)
        self._recalculate_total_amount()
        return item

    def update_item_price(self, item_id: UUID, new_unit_price: Money) -> SaleItem:
        self._require_active("Cannot update items in a cancelled sale")
        item = self._require_item(item_id)
        self._require_currency(new_unit_price)
        item.update_unit_price(new_unit_price)
        self._recalculate_total_amount()
        return item

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def cancel(self, cancelled_at: Optional[datetime] = None) -> None:
        if self._status is SaleStatus.CANCELLED:
            raise InvalidStateTransitionError("Sale is already cancelled")
        cancelled_at = cancelled_at if cancelled_at is not None else utc_now()
        require_utc_timestamp("cancelled_at", cancelled_at)
        self._status = SaleStatus.CANCELLED
        self._cancelled_at = cancelled_at

    def reactivate(self) -> None:
        if self._status is SaleStatus.ACTIVE:
            raise InvalidStateTransitionError("Sale is already active")
        self._status = SaleStatus.ACTIVE
        self._cancelled_at = None

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def has_discounted_items(self) -> bool:
        return any(item.discount_percentage > 0 for item in self._items)

    def get_total_items_count(self) -> int:
        """Sum of quantities, not the number of lines."""

        return sum(item.quantity for item in self._items)

    def is_eligible_for_bulk_discount(self) -> bool:
        return any(item.quantity >= 4 for item in self._items)

    # ------------------------------------------------------------------
    # Persistence hook
    # ------------------------------------------------------------------

    def mark_persisted(self, version: int) -> None:
        """Record the version the store now holds. Only repositories call this."""

        if version < self._version:
            raise InvalidArgumentError("version cannot go backwards")
        self._version = version

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_active(self, message: str) -> None:
        if self._status is SaleStatus.CANCELLED:
            raise InvalidStateTransitionError(message)

    def _require_item(self, item_id: UUID) -> SaleItem:
        item = self.find_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found in sale {self._sale_number}")
        return item

    def _require_currency(self, unit_price: Money) -> None:
        if not isinstance(unit_price, Money):
            raise InvalidArgumentError("unit_price is required")
        if unit_price.currency != self.currency:
            raise InvalidArgumentError(
                f"Sale {self._sale_number} is priced in {self.currency}, got {unit_price.currency}"
            )

    def _recalculate_total_amount(self) -> None:
        total = Money.zero(self.currency)
        for item in self._items:
            total = total.add(item.total_amount)
        self._total_amount = total

    def __repr__(self) -> str:
        return (
            f"Sale(id={self._id}, sale_number={self._sale_number!r}, status={self._status.value}, "
            f"items={len(self._items)}, total={self._total_amount})"
        )


__all__ = ["Sale", "SaleStatus"]
