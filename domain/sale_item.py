"""
Domain: SaleItem entity (one line of a sale).

Rules implemented here:
- 1 <= quantity <= 20 at all times.
- The discount tier is a pure function of quantity:
  - 1..3   -> 0%
  - 4..9   -> 10%
  - 10..20 -> 20%
- total_amount = unit_price x quantity x (1 - discount / 100), recomputed on every
  quantity or price change.

Items are created and mutated only by their owning Sale. A rejected mutation
leaves the item exactly as it was.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from .errors import InvalidArgumentError, QuantityOutOfRangeError
from .identity import ProductRef
from .money import Money

MIN_ITEM_QUANTITY: int = 1
MAX_ITEM_QUANTITY: int = 20

NO_DISCOUNT = Decimal("0")
BULK_DISCOUNT = Decimal("10")
LARGE_BULK_DISCOUNT = Decimal("20")


def _require_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise QuantityOutOfRangeError("Quantity must be an integer")
    if quantity < MIN_ITEM_QUANTITY:
        raise QuantityOutOfRangeError("Quantity must be greater than zero")
    if quantity > MAX_ITEM_QUANTITY:
        raise QuantityOutOfRangeError(f"Cannot sell more than {MAX_ITEM_QUANTITY} identical items")


def _require_price(unit_price: Optional[Money]) -> None:
    if not isinstance(unit_price, Money):
        raise InvalidArgumentError("unit_price is required")


def discount_for_quantity(quantity: int) -> Decimal:
    """Resolve the discount tier (percent) for a valid quantity."""

    _require_quantity(quantity)
    if quantity >= 10:
        return LARGE_BULK_DISCOUNT
    if quantity >= 4:
        return BULK_DISCOUNT
    return NO_DISCOUNT


def _line_total(unit_price: Money, quantity: int, discount: Decimal) -> Money:
    return unit_price.multiply(quantity).apply_discount(discount)


class SaleItem:
    __slots__ = ("_id", "_product", "_quantity", "_unit_price", "_discount_percentage", "_total_amount")

    def __init__(self, item_id: UUID, product: ProductRef, quantity: int, unit_price: Money) -> None:
        if not isinstance(item_id, UUID):
            raise InvalidArgumentError("item id must be a UUID")
        if not isinstance(product, ProductRef):
            raise InvalidArgumentError("product is required")
        _require_quantity(quantity)
        _require_price(unit_price)

        discount = discount_for_quantity(quantity)
        self._id = item_id
        self._product = product
        self._quantity = quantity
        self._unit_price = unit_price
        self._discount_percentage = discount
        self._total_amount = _line_total(unit_price, quantity, discount)

    @classmethod
    def create(cls, product: ProductRef, quantity: int, unit_price: Money) -> "SaleItem":
        return cls(uuid4(), product, quantity, unit_price)

    @classmethod
    def restore(cls, item_id: UUID, product: ProductRef, quantity: int, unit_price: Money) -> "SaleItem":
        """Rehydrate a stored item. Discount and total are re-derived, never trusted."""

        return cls(item_id, product, quantity, unit_price)

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def product(self) -> ProductRef:
        return self._product

    @property
    def quantity(self) -> int:
        return self._quantity

    @property
    def unit_price(self) -> Money:
        return self._unit_price

    @property
    def discount_percentage(self) -> Decimal:
        return self._discount_percentage

    @property
    def total_amount(self) -> Money:
        return self._total_amount

    def update_quantity(self, new_quantity: int) -> None:
        """
        Change the quantity; the discount tier follows the new quantity.

        Validation and computation happen before any field is assigned.
        """

        discount = discount_for_quantity(new_quantity)
        total = _line_total(self._unit_price, new_quantity, discount)
        self._quantity = new_quantity
        self._discount_percentage = discount
        self._total_amount = total

    def update_unit_price(self, new_unit_price: Money) -> None:
        """Replace the price; the tier is quantity-driven and stays as is."""

        _require_price(new_unit_price)
        total = _line_total(new_unit_price, self._quantity, self._discount_percentage)
        self._unit_price = new_unit_price
        self._total_amount = total

    def __repr__(self) -> str:
        return (
            f"SaleItem(id={self._id}, product={self._product.id}, quantity={self._quantity}, "
            f"unit_price={self._unit_price}, discount={self._discount_percentage}%)"
        )


__all__ = [
    "MIN_ITEM_QUANTITY",
    "MAX_ITEM_QUANTITY",
    "SaleItem",
    "discount_for_quantity",
]
