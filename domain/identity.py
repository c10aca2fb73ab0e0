"""
Domain: external identity snapshots.

Customers, branches and products are owned by other systems. A sale keeps a
denormalized copy of the id plus the display fields as they were when the sale
(or the item) was created. These copies are never refreshed: if the customer
later changes their name, existing sales keep the old one.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from .errors import InvalidArgumentError


def _require_uuid(name: str, value: UUID) -> None:
    if not isinstance(value, UUID):
        raise InvalidArgumentError(f"{name} must be a UUID")


def _require_name(name: str, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} is required")


def _require_text(name: str, value: str) -> None:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string")


@dataclass(frozen=True, slots=True)
class CustomerRef:
    id: UUID
    name: str
    email: str

    def __post_init__(self) -> None:
        _require_uuid("customer id", self.id)
        _require_name("customer name", self.name)
        _require_text("customer email", self.email)


@dataclass(frozen=True, slots=True)
class BranchRef:
    id: UUID
    name: str
    address: str

    def __post_init__(self) -> None:
        _require_uuid("branch id", self.id)
        _require_name("branch name", self.name)
        _require_text("branch address", self.address)


@dataclass(frozen=True, slots=True)
class ProductRef:
    id: UUID
    name: str
    description: str

    def __post_init__(self) -> None:
        _require_uuid("product id", self.id)
        _require_name("product name", self.name)
        _require_text("product description", self.description)


__all__ = ["CustomerRef", "BranchRef", "ProductRef"]
