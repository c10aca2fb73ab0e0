"""
Supabase-backed sale repository (persistence).

This module provides *only* persistence for the Sale aggregate. It does not
enforce business rules; it maps the aggregate to two tables and back:

- sales:       one row per sale (customer / branch snapshots are denormalized columns)
- sale_items:  one row per item, ordered by `position`

Discounts and totals are written for reporting, but on load they are always
re-derived by the domain from quantity and unit price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from domain.errors import ConcurrencyConflictError, InvalidStateTransitionError, NotFoundError
from domain.identity import BranchRef, CustomerRef, ProductRef
from domain.money import Money
from domain.pagination import PaginatedResult
from domain.sale import Sale, SaleStatus
from domain.sale_item import SaleItem
from domain.time import require_utc_timestamp
from repositories.sale_repository import (
    ORDER_BY_CUSTOMER_NAME,
    ORDER_BY_SALE_DATE,
    ORDER_BY_SALE_NUMBER,
    ORDER_BY_TOTAL_AMOUNT,
    SaleQuery,
)

logger = logging.getLogger(__name__)

# Supabase table names.
# Keep these aligned with your database schema.
_SALES_TABLE: str = "sales"
_SALE_ITEMS_TABLE: str = "sale_items"

_SELECT_WITH_ITEMS: str = f"*, {_SALE_ITEMS_TABLE}(*)"

# Write functions, see sql/sales_schema.sql.
_CREATE_FUNCTION: str = "create_sale_with_items"
_UPDATE_FUNCTION: str = "update_sale_with_items"

# PostgREST error code for a range starting past the last row (HTTP 416).
_RANGE_NOT_SATISFIABLE: str = "PGRST103"

_ORDER_COLUMNS: Dict[str, str] = {
    ORDER_BY_SALE_DATE: "sale_date_utc",
    ORDER_BY_TOTAL_AMOUNT: "total_amount",
    ORDER_BY_SALE_NUMBER: "sale_number",
    ORDER_BY_CUSTOMER_NAME: "customer_name",
}


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _check(response: Any, action: str) -> List[Mapping[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def sale_to_row(sale: Sale, *, version: int) -> Dict[str, Any]:
    return {
        "sale_id": str(sale.id),
        "sale_number": sale.sale_number,
        "sale_date_utc": _to_iso_utc(sale.sale_date, name="sale_date"),
        "customer_id": str(sale.customer.id),
        "customer_name": sale.customer.name,
        "customer_email": sale.customer.email,
        "branch_id": str(sale.branch.id),
        "branch_name": sale.branch.name,
        "branch_address": sale.branch.address,
        "status": sale.status.value,
        "total_amount": str(sale.total_amount.amount),
        "currency": sale.currency,
        "created_at_utc": _to_iso_utc(sale.created_at, name="created_at"),
        "cancelled_at_utc": (
            _to_iso_utc(sale.cancelled_at, name="cancelled_at") if sale.cancelled_at is not None else None
        ),
        "version": version,
    }


def items_to_rows(sale: Sale) -> List[Dict[str, Any]]:
    return [
        {
            "item_id": str(item.id),
            "sale_id": str(sale.id),
            "position": position,
            "product_id": str(item.product.id),
            "product_name": item.product.name,
            "product_description": item.product.description,
            "quantity": item.quantity,
            "unit_price": str(item.unit_price.amount),
            "currency": item.unit_price.currency,
            "discount_percentage": str(item.discount_percentage),
            "total_amount": str(item.total_amount.amount),
        }
        for position, item in enumerate(sale.items)
    ]


def _row_to_item(row: Mapping[str, Any]) -> SaleItem:
    return SaleItem.restore(
        item_id=UUID(str(row["item_id"])),
        product=ProductRef(
            id=UUID(str(row["product_id"])),
            name=str(row["product_name"]),
            description=str(row.get("product_description") or ""),
        ),
        quantity=int(row["quantity"]),
        unit_price=Money(Decimal(str(row["unit_price"])), str(row["currency"])),
    )


def row_to_sale(row: Mapping[str, Any]) -> Sale:
    """Convert a Supabase `sales` row (with embedded `sale_items`) into a Sale."""

    item_rows = sorted(row.get(_SALE_ITEMS_TABLE) or [], key=lambda r: int(r.get("position", 0)))
    return Sale.restore(
        sale_id=UUID(str(row["sale_id"])),
        sale_number=str(row["sale_number"]),
        sale_date=_parse_utc_datetime(row["sale_date_utc"]),
        customer=CustomerRef(
            id=UUID(str(row["customer_id"])),
            name=str(row["customer_name"]),
            email=str(row.get("customer_email") or ""),
        ),
        branch=BranchRef(
            id=UUID(str(row["branch_id"])),
            name=str(row["branch_name"]),
            address=str(row.get("branch_address") or ""),
        ),
        status=SaleStatus(str(row["status"])),
        items=[_row_to_item(item_row) for item_row in item_rows],
        currency=str(row.get("currency", "BRL")),
        created_at=_parse_utc_datetime(row["created_at_utc"]),
        cancelled_at=_parse_utc_datetime(row["cancelled_at_utc"]) if row.get("cancelled_at_utc") else None,
        version=int(row.get("version") or 0),
    )


def _apply_filters(builder: Any, query: SaleQuery) -> Any:
    if query.customer_id is not None:
        builder = builder.eq("customer_id", str(query.customer_id))
    if query.branch_id is not None:
        builder = builder.eq("branch_id", str(query.branch_id))
    if query.status is not None:
        builder = builder.eq("status", query.status.value)
    if query.start_date is not None:
        builder = builder.gte("sale_date_utc", _to_iso_utc(query.start_date, name="start_date"))
    if query.end_date is not None:
        builder = builder.lte("sale_date_utc", _to_iso_utc(query.end_date, name="end_date"))
    if query.sale_number and query.sale_number.strip():
        builder = builder.ilike("sale_number", _like_pattern(query.sale_number))
    if query.customer_name and query.customer_name.strip():
        builder = builder.ilike("customer_name", _like_pattern(query.customer_name))
    return builder


@dataclass(frozen=True, slots=True)
class _WriteResult:
    """Outcome of create_sale_with_items / update_sale_with_items."""
    success: bool
    version: Optional[int]
    error_code: Optional[str]
    error_message: Optional[str]

    @staticmethod
    def from_payload(payload: Any) -> "_WriteResult":
        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not isinstance(payload, Mapping):
            raise RuntimeError(f"Unexpected result from sale write function: {payload!r}")
        version = payload.get("version")
        return _WriteResult(
            success=bool(payload.get("success")),
            version=int(version) if version is not None else None,
            error_code=payload.get("error"),
            error_message=payload.get("message"),
        )


class SupabaseSaleRepository:
    """
    SaleRepository over supabase-py.

    Writes go through PostgreSQL functions (`supabase.rpc`) so the sale row and
    its items change in one transaction. The version check inside
    update_sale_with_items is what serializes concurrent writers.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    def create(self, sale: Sale) -> Sale:
        result = self._write(
            _CREATE_FUNCTION,
            {"p_sale": sale_to_row(sale, version=1), "p_items": items_to_rows(sale)},
            action="create sale",
        )
        if not result.success:
            if result.error_code == "DUPLICATE_SALE":
                raise InvalidStateTransitionError(
                    result.error_message or f"Sale with number {sale.sale_number} already exists"
                )
            raise RuntimeError(f"Failed to create sale: {result.error_code}: {result.error_message}")

        sale.mark_persisted(result.version or 1)
        logger.info("Sale created", extra={"sale_id": str(sale.id), "sale_number": sale.sale_number})
        return sale

    def get_by_id(self, sale_id: UUID) -> Optional[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select(_SELECT_WITH_ITEMS)
            .eq("sale_id", str(sale_id))
            .limit(1)
            .execute()
        )
        rows = _check(response, "get sale")
        return row_to_sale(rows[0]) if rows else None

    def get_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select(_SELECT_WITH_ITEMS)
            .eq("sale_number", sale_number)
            .limit(1)
            .execute()
        )
        rows = _check(response, "get sale by number")
        return row_to_sale(rows[0]) if rows else None

    def update(self, sale: Sale) -> Sale:
        new_version = sale.version + 1
        result = self._write(
            _UPDATE_FUNCTION,
            {
                "p_sale": sale_to_row(sale, version=new_version),
                "p_items": items_to_rows(sale),
                "p_expected_version": sale.version,
            },
            action="update sale",
        )
        if not result.success:
            if result.error_code == "NOT_FOUND":
                raise NotFoundError(f"Sale with ID {sale.id} not found")
            if result.error_code == "VERSION_CONFLICT":
                logger.warning(
                    "Stale sale update rejected",
                    extra={"sale_id": str(sale.id), "version": sale.version},
                )
                raise ConcurrencyConflictError(
                    f"Sale {sale.sale_number} was modified concurrently ({result.error_message})"
                )
            raise RuntimeError(f"Failed to update sale: {result.error_code}: {result.error_message}")

        sale.mark_persisted(result.version or new_version)
        return sale

    def delete(self, sale_id: UUID) -> bool:
        # sale_items rows go with it (ON DELETE CASCADE).
        response = (
            self._client.table(_SALES_TABLE)
            .delete()
            .eq("sale_id", str(sale_id))
            .execute()
        )
        rows = _check(response, "delete sale")
        return bool(rows)

    def get_paginated(self, query: SaleQuery) -> PaginatedResult[Sale]:
        from postgrest.exceptions import APIError

        builder = _apply_filters(
            self._client.table(_SALES_TABLE).select(_SELECT_WITH_ITEMS, count="exact"),
            query,
        )
        builder = builder.order(_ORDER_COLUMNS[query.order_by], desc=query.descending)
        builder = builder.range(query.offset, query.offset + query.page_size - 1)

        try:
            response = builder.execute()
        except APIError as e:
            if getattr(e, "code", None) != _RANGE_NOT_SATISFIABLE:
                raise
            # Page starts past the last row: PostgREST answers 416 instead of an empty page.
            return PaginatedResult(
                items=(),
                total_count=self._count(query),
                current_page=query.page,
                page_size=query.page_size,
            )

        rows = _check(response, "query sales")
        total_count = getattr(response, "count", None) or 0

        return PaginatedResult(
            items=tuple(row_to_sale(row) for row in rows),
            total_count=total_count,
            current_page=query.page,
            page_size=query.page_size,
        )

    def list_by_customer(self, customer_id: UUID) -> List[Sale]:
        return self._list("customer_id", str(customer_id))

    def list_by_branch(self, branch_id: UUID) -> List[Sale]:
        return self._list("branch_id", str(branch_id))

    def list_by_date_range(self, start_date: datetime, end_date: datetime) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select(_SELECT_WITH_ITEMS)
            .gte("sale_date_utc", _to_iso_utc(start_date, name="start_date"))
            .lte("sale_date_utc", _to_iso_utc(end_date, name="end_date"))
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return [row_to_sale(row) for row in _check(response, "list sales by date range")]

    def list_active(self) -> List[Sale]:
        return self._list("status", SaleStatus.ACTIVE.value)

    def _list(self, column: str, value: str) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select(_SELECT_WITH_ITEMS)
            .eq(column, value)
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return [row_to_sale(row) for row in _check(response, f"list sales by {column}")]

    def _count(self, query: SaleQuery) -> int:
        response = (
            _apply_filters(self._client.table(_SALES_TABLE).select("sale_id", count="exact"), query)
            .limit(1)
            .execute()
        )
        _check(response, "count sales")
        return getattr(response, "count", None) or 0

    def _write(self, function: str, params: Dict[str, Any], *, action: str) -> _WriteResult:
        """
        Call one of the sale write functions from sql/sales_schema.sql.

        Each runs in a single database transaction and reports its outcome as
        {"success": ..., "version": ..., "error": ..., "message": ...}.
        """
        from postgrest.exceptions import APIError

        try:
            response = self._client.rpc(function, params).execute()
        except APIError as e:
            # supabase-py may raise APIError for a jsonb result it did not expect
            payload = e.json() if callable(getattr(e, "json", None)) else {}
            if isinstance(payload, Mapping) and "success" in payload:
                return _WriteResult.from_payload(payload)
            raise RuntimeError(f"Failed to {action}: {getattr(e, 'message', None) or e}") from e

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to {action}: {error}")
        return _WriteResult.from_payload(getattr(response, "data", None))


__all__ = [
    "SupabaseSaleRepository",
    "sale_to_row",
    "items_to_rows",
    "row_to_sale",
]
