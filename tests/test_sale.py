"""
Tests for `domain/sale.py`.

Covers contract rules:
- total_amount always equals the sum of item totals.
- Adding a product already on the sale merges into its item (limit 20 combined).
- Cancelled sales reject every item mutation.
- Active <-> Cancelled transitions set and clear cancelled_at; self-transitions fail.
- A rejected operation leaves the sale unchanged.
- Timestamps are UTC and items share the sale currency.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from support.builders import SALE_DATE, brl, make_branch, make_customer, make_item, make_product, make_sale
from domain.errors import (
    InvalidArgumentError,
    InvalidStateTransitionError,
    NotFoundError,
    QuantityOutOfRangeError,
    SaleDomainError,
)
from domain.money import Money
from domain.sale import Sale, SaleStatus


def _assert_total_matches_items(sale: Sale) -> None:
    expected = sum((item.total_amount.amount for item in sale.items), Decimal("0"))
    assert sale.total_amount.amount == expected


def test_new_sale_is_active_and_empty() -> None:
    sale = Sale("S-1", make_customer(), make_branch())

    assert sale.status is SaleStatus.ACTIVE
    assert sale.items == ()
    assert sale.total_amount == Money.zero("BRL")
    assert sale.cancelled_at is None
    assert sale.version == 0
    assert sale.sale_date.tzinfo is not None


def test_new_sale_requires_sale_number_and_refs() -> None:
    with pytest.raises(InvalidArgumentError):
        Sale("  ", make_customer(), make_branch())

    with pytest.raises(InvalidArgumentError):
        Sale("S-1", None, make_branch())  # type: ignore[arg-type]


def test_new_sale_requires_utc_sale_date() -> None:
    with pytest.raises(ValueError):
        Sale("S-1", make_customer(), make_branch(), sale_date=datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        Sale(
            "S-1",
            make_customer(),
            make_branch(),
            sale_date=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=-3))),
        )


def test_add_item_applies_discount_and_updates_total() -> None:
    """4 units at 10.00 with 10% off is 36.00."""

    sale = Sale("S-1", make_customer(), make_branch())

    item = sale.add_item(make_product(1), 4, brl("10.00"))

    assert item.discount_percentage == Decimal("10")
    assert sale.total_amount.amount == Decimal("36.00")
    _assert_total_matches_items(sale)


def test_add_existing_product_merges_quantity() -> None:
    sale = Sale("S-1", make_customer(), make_branch())
    first = sale.add_item(make_product(1), 3, brl("10.00"))

    merged = sale.add_item(make_product(1), 7, brl("10.00"))

    assert merged is first
    assert len(sale.items) == 1
    assert merged.quantity == 10
    assert merged.discount_percentage == Decimal("20")
    assert sale.total_amount.amount == Decimal("80.00")


def test_merge_over_limit_is_rejected_and_sale_unchanged() -> None:
    """15 + 10 exceeds the 20-unit limit; quantity stays at 15."""

    sale = Sale("S-1", make_customer(), make_branch())
    item = sale.add_item(make_product(1), 15, brl("10.00"))
    total_before = sale.total_amount

    with pytest.raises(QuantityOutOfRangeError, match="more than 20 identical items"):
        sale.add_item(make_product(1), 10, brl("10.00"))

    assert item.quantity == 15
    assert sale.total_amount == total_before


def test_merge_reaching_exactly_twenty_is_allowed() -> None:
    sale = Sale("S-1", make_customer(), make_branch())
    sale.add_item(make_product(1), 15, brl("10.00"))

    item = sale.add_item(make_product(1), 5, brl("10.00"))

    assert item.quantity == 20


def test_merge_rejects_non_positive_increment() -> None:
    sale = Sale("S-1", make_customer(), make_branch())
    sale.add_item(make_product(1), 5, brl("10.00"))

    with pytest.raises(QuantityOutOfRangeError):
        sale.add_item(make_product(1), 0, brl("10.00"))


def test_add_item_in_other_currency_is_rejected() -> None:
    sale = Sale("S-1", make_customer(), make_branch())

    with pytest.raises(InvalidArgumentError):
        sale.add_item(make_product(1), 1, Money(Decimal("1.00"), "USD"))

    assert sale.items == ()


@pytest.mark.parametrize("unit_price", [Money(Decimal("99.00"), "USD"), None])
def test_merge_with_invalid_price_is_rejected_and_sale_unchanged(unit_price) -> None:
    """Merging into an existing line still requires a price in the sale currency."""

    sale = Sale("S-1", make_customer(), make_branch())
    item = sale.add_item(make_product(1), 2, brl("10.00"))

    with pytest.raises(InvalidArgumentError):
        sale.add_item(make_product(1), 2, unit_price)

    assert item.quantity == 2
    assert sale.total_amount.amount == Decimal("20.00")


def test_remove_item_recomputes_total() -> None:
    """Removing a 67.50 item from a 150.00 sale leaves 82.50."""

    # 5 x 15.00 with 10% off = 67.50; 3 x 27.50 = 82.50
    sale = make_sale(items=[(5, "15.00"), (3, "27.50")])
    assert sale.total_amount.amount == Decimal("150.00")
    to_remove = sale.items[0]

    removed = sale.remove_item(to_remove.id)

    assert removed is to_remove
    assert sale.total_amount.amount == Decimal("82.50")
    assert len(sale.items) == 1


def test_remove_unknown_item_raises_not_found() -> None:
    sale = make_sale(items=[(1, "10.00")])

    with pytest.raises(NotFoundError):
        sale.remove_item(uuid4())


def test_update_item_quantity_and_price() -> None:
    sale = make_sale(items=[(2, "10.00"), (1, "5.00")])
    item = sale.items[0]

    sale.update_item_quantity(item.id, 10)
    assert sale.total_amount.amount == Decimal("85.00")

    sale.update_item_price(item.id, brl("20.00"))
    assert sale.total_amount.amount == Decimal("165.00")
    _assert_total_matches_items(sale)


def test_rejected_quantity_update_keeps_total() -> None:
    sale = make_sale(items=[(2, "10.00")])
    item = sale.items[0]

    with pytest.raises(QuantityOutOfRangeError):
        sale.update_item_quantity(item.id, 21)

    assert item.quantity == 2
    assert sale.total_amount.amount == Decimal("20.00")


def test_update_item_price_rejects_other_currency() -> None:
    sale = make_sale(items=[(2, "10.00")])
    item = sale.items[0]

    with pytest.raises(InvalidArgumentError):
        sale.update_item_price(item.id, Money(Decimal("3.00"), "USD"))

    assert item.unit_price == brl("10.00")


def test_cancel_and_reactivate() -> None:
    sale = make_sale(items=[(1, "10.00")])

    sale.cancel()
    assert sale.status is SaleStatus.CANCELLED
    assert sale.cancelled_at is not None

    with pytest.raises(InvalidStateTransitionError, match="already cancelled"):
        sale.cancel()

    sale.reactivate()
    assert sale.status is SaleStatus.ACTIVE
    assert sale.cancelled_at is None

    with pytest.raises(InvalidStateTransitionError, match="already active"):
        sale.reactivate()


@pytest.mark.parametrize(
    "mutate",
    [
        lambda sale: sale.add_item(make_product(9), 1, brl("1.00")),
        lambda sale: sale.remove_item(sale.items[0].id),
        lambda sale: sale.update_item_quantity(sale.items[0].id, 2),
        lambda sale: sale.update_item_price(sale.items[0].id, brl("2.00")),
    ],
)
def test_cancelled_sale_rejects_item_mutations(mutate) -> None:
    sale = make_sale(items=[(1, "10.00"), (2, "10.00")], status=SaleStatus.CANCELLED)
    total_before = sale.total_amount

    with pytest.raises(InvalidStateTransitionError):
        mutate(sale)

    assert len(sale.items) == 2
    assert sale.total_amount == total_before


def test_derived_queries() -> None:
    sale = make_sale(items=[(3, "10.00"), (2, "1.00")])
    assert sale.get_total_items_count() == 5
    assert sale.has_discounted_items() is False
    assert sale.is_eligible_for_bulk_discount() is False

    sale.update_item_quantity(sale.items[1].id, 4)
    assert sale.get_total_items_count() == 7
    assert sale.has_discounted_items() is True
    assert sale.is_eligible_for_bulk_discount() is True


def test_restore_rejects_inconsistent_state() -> None:
    """Verify restore refuses status/cancelled_at mismatches and duplicate products."""

    product = make_product(1)
    common = dict(
        sale_id=uuid4(),
        sale_number="S-1",
        sale_date=SALE_DATE,
        customer=make_customer(),
        branch=make_branch(),
        created_at=SALE_DATE,
    )

    with pytest.raises(InvalidArgumentError):
        Sale.restore(status=SaleStatus.CANCELLED, cancelled_at=None, **common)

    with pytest.raises(InvalidArgumentError):
        Sale.restore(status=SaleStatus.ACTIVE, cancelled_at=SALE_DATE, **common)

    with pytest.raises(InvalidArgumentError):
        Sale.restore(
            status=SaleStatus.ACTIVE,
            items=[make_item(1, "1.00", product), make_item(2, "1.00", product)],
            **common,
        )


def test_mark_persisted_never_goes_backwards() -> None:
    sale = make_sale(items=[(1, "1.00")], version=3)

    sale.mark_persisted(4)
    assert sale.version == 4

    with pytest.raises(InvalidArgumentError):
        sale.mark_persisted(2)


def _apply(sale: Sale, step: tuple) -> None:
    kind, *args = step
    if kind == "add":
        product_n, quantity, price = args
        sale.add_item(make_product(product_n), quantity, brl(price))
    elif kind == "remove":
        sale.remove_item(_item_id(sale, args[0]))
    elif kind == "quantity":
        sale.update_item_quantity(_item_id(sale, args[0]), args[1])
    elif kind == "price":
        sale.update_item_price(_item_id(sale, args[0]), brl(args[1]))
    elif kind == "cancel":
        sale.cancel()
    elif kind == "reactivate":
        sale.reactivate()


def _item_id(sale: Sale, index: int):
    return sale.items[index].id if index < len(sale.items) else uuid4()


def _snapshot(sale: Sale) -> tuple:
    return (
        sale.status,
        sale.total_amount,
        tuple((item.id, item.quantity, item.unit_price, item.discount_percentage) for item in sale.items),
    )


@pytest.mark.parametrize(
    "steps",
    [
        [("add", 1, 3, "10.00"), ("add", 2, 4, "2.50"), ("add", 1, 7, "10.00"), ("remove", 1)],
        [("add", 1, 15, "1.99"), ("add", 1, 10, "1.99"), ("quantity", 0, 4), ("price", 0, "0.33")],
        [("add", 1, 1, "5.00"), ("add", 2, 20, "0.10"), ("quantity", 1, 21), ("remove", 5), ("add", 3, 9, "7.77")],
        [("add", 1, 2, "3.00"), ("cancel",), ("add", 2, 1, "1.00"), ("quantity", 0, 9), ("reactivate",),
         ("quantity", 0, 9), ("remove", 0)],
        [("add", 1, 10, "12.34"), ("add", 2, 0, "1.00"), ("price", 0, "0.01"), ("quantity", 0, 3)],
    ],
)
def test_total_matches_items_after_every_step(steps: list) -> None:
    """The total is re-derived after each step; a rejected step changes nothing."""

    sale = Sale("S-1", make_customer(), make_branch())

    for step in steps:
        before = _snapshot(sale)
        try:
            _apply(sale, step)
        except SaleDomainError:
            assert _snapshot(sale) == before
        _assert_total_matches_items(sale)


def test_repeating_an_item_update_is_idempotent() -> None:
    sale = make_sale(items=[(2, "10.00"), (1, "5.00")])
    item_id = sale.items[0].id

    sale.update_item_quantity(item_id, 10)
    sale.update_item_price(item_id, brl("7.00"))
    first_total = sale.total_amount

    sale.update_item_quantity(item_id, 10)
    sale.update_item_price(item_id, brl("7.00"))

    assert sale.total_amount == first_total
    assert sale.total_amount.amount == Decimal("61.00")
