"""
Sale commands (application input).

Typed requests for each sale operation. Each command validates itself on
construction and reports *every* problem at once through ValidationFailedError,
before any repository or aggregate is touched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from domain.errors import ValidationFailedError
from domain.identity import BranchRef, CustomerRef, ProductRef
from domain.money import DEFAULT_CURRENCY, Money
from domain.sale_item import MAX_ITEM_QUANTITY, MIN_ITEM_QUANTITY

SALE_NUMBER_MAX_LENGTH = 50
CUSTOMER_NAME_MAX_LENGTH = 100
PRODUCT_NAME_MAX_LENGTH = 100
PRODUCT_DESCRIPTION_MAX_LENGTH = 500
CANCELLATION_REASON_MAX_LENGTH = 500

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _check_uuid(errors: List[str], value: Optional[UUID], label: str) -> None:
    if not isinstance(value, UUID) or value.int == 0:
        errors.append(f"{label} is required")


def _check_quantity(errors: List[str], quantity: Optional[int], prefix: str = "") -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        errors.append(f"{prefix}Quantity must be an integer")
    elif quantity < MIN_ITEM_QUANTITY:
        errors.append(f"{prefix}Quantity must be greater than zero")
    elif quantity > MAX_ITEM_QUANTITY:
        errors.append(f"{prefix}Cannot sell more than {MAX_ITEM_QUANTITY} identical items")


def _check_price(errors: List[str], unit_price: Optional[Decimal], prefix: str = "") -> None:
    if not isinstance(unit_price, Decimal) or not unit_price.is_finite() or unit_price <= 0:
        errors.append(f"{prefix}Unit price must be greater than zero")


def _check_currency(errors: List[str], currency: Optional[str]) -> None:
    if not isinstance(currency, str) or _blank(currency):
        errors.append("Currency is required")
    elif len(currency) != 3 or not currency.isalpha():
        errors.append("Currency must be 3 characters (e.g., BRL, USD)")


def _check_product(errors: List[str], item: "SaleItemInput", prefix: str = "") -> None:
    _check_uuid(errors, item.product_id, f"{prefix}Product ID")
    if _blank(item.product_name):
        errors.append(f"{prefix}Product name is required")
    elif len(item.product_name) > PRODUCT_NAME_MAX_LENGTH:
        errors.append(f"{prefix}Product name cannot exceed {PRODUCT_NAME_MAX_LENGTH} characters")
    if len(item.product_description or "") > PRODUCT_DESCRIPTION_MAX_LENGTH:
        errors.append(
            f"{prefix}Product description cannot exceed {PRODUCT_DESCRIPTION_MAX_LENGTH} characters"
        )
    _check_quantity(errors, item.quantity, prefix)
    _check_price(errors, item.unit_price, prefix)


@dataclass(frozen=True, slots=True)
class SaleItemInput:
    """One requested line: product snapshot, quantity and unit price."""

    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    product_description: str = ""

    def product_ref(self) -> ProductRef:
        return ProductRef(id=self.product_id, name=self.product_name, description=self.product_description or "")

    def money(self, currency: str) -> Money:
        return Money(self.unit_price, currency.upper())


@dataclass(frozen=True, slots=True)
class CreateSaleCommand:
    sale_number: str
    customer_id: UUID
    customer_name: str
    customer_email: str
    branch_id: UUID
    branch_name: str
    items: Tuple[SaleItemInput, ...]
    branch_address: str = ""
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        errors: List[str] = []

        if _blank(self.sale_number):
            errors.append("Sale number is required")
        elif len(self.sale_number) > SALE_NUMBER_MAX_LENGTH:
            errors.append(f"Sale number cannot exceed {SALE_NUMBER_MAX_LENGTH} characters")

        _check_uuid(errors, self.customer_id, "Customer ID")
        if _blank(self.customer_name):
            errors.append("Customer name is required")
        elif len(self.customer_name) > CUSTOMER_NAME_MAX_LENGTH:
            errors.append(f"Customer name cannot exceed {CUSTOMER_NAME_MAX_LENGTH} characters")
        if _blank(self.customer_email):
            errors.append("Customer email is required")
        elif not _EMAIL_PATTERN.match(self.customer_email):
            errors.append("Customer email must be valid")

        _check_uuid(errors, self.branch_id, "Branch ID")
        if _blank(self.branch_name):
            errors.append("Branch name is required")

        _check_currency(errors, self.currency)

        if not self.items:
            errors.append("At least one item is required for the sale")
        for index, item in enumerate(self.items):
            _check_product(errors, item, prefix=f"Item {index + 1}: ")

        if errors:
            raise ValidationFailedError(errors)

    def customer_ref(self) -> CustomerRef:
        return CustomerRef(id=self.customer_id, name=self.customer_name, email=self.customer_email)

    def branch_ref(self) -> BranchRef:
        return BranchRef(id=self.branch_id, name=self.branch_name, address=self.branch_address or "")


@dataclass(frozen=True, slots=True)
class AddItemToSaleCommand:
    sale_id: UUID
    item: SaleItemInput
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        errors: List[str] = []
        _check_uuid(errors, self.sale_id, "Sale ID")
        _check_product(errors, self.item)
        _check_currency(errors, self.currency)
        if errors:
            raise ValidationFailedError(errors)


@dataclass(frozen=True, slots=True)
class ModifySaleItemCommand:
    """Change quantity, unit price, or both. At least one must be given."""

    sale_id: UUID
    item_id: UUID
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        errors: List[str] = []
        _check_uuid(errors, self.sale_id, "Sale ID")
        _check_uuid(errors, self.item_id, "Item ID")
        if self.quantity is not None:
            _check_quantity(errors, self.quantity)
        if self.unit_price is not None:
            _check_price(errors, self.unit_price)
        _check_currency(errors, self.currency)
        if self.quantity is None and self.unit_price is None:
            errors.append("At least quantity or unit price must be provided for modification")
        if errors:
            raise ValidationFailedError(errors)


@dataclass(frozen=True, slots=True)
class RemoveSaleItemCommand:
    sale_id: UUID
    item_id: UUID

    def __post_init__(self) -> None:
        errors: List[str] = []
        _check_uuid(errors, self.sale_id, "Sale ID")
        _check_uuid(errors, self.item_id, "Item ID")
        if errors:
            raise ValidationFailedError(errors)


@dataclass(frozen=True, slots=True)
class CancelSaleCommand:
    sale_id: UUID
    reason: Optional[str] = field(default=None)

    def __post_init__(self) -> None:
        errors: List[str] = []
        _check_uuid(errors, self.sale_id, "Sale ID")
        if self.reason is not None and len(self.reason) > CANCELLATION_REASON_MAX_LENGTH:
            errors.append(f"Cancellation reason cannot exceed {CANCELLATION_REASON_MAX_LENGTH} characters")
        if errors:
            raise ValidationFailedError(errors)


__all__ = [
    "SaleItemInput",
    "CreateSaleCommand",
    "AddItemToSaleCommand",
    "ModifySaleItemCommand",
    "RemoveSaleItemCommand",
    "CancelSaleCommand",
]
