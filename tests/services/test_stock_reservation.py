# tests/services/test_stock_reservation.py
from __future__ import annotations

from decimal import Decimal

import pytest

from app.services.customer_lookup import SqlCustomerLookup
from app.services.errors import InsufficientStock, NotFound, ValidationError
from app.services.stock_reservation import ReserveLine, reserve
from tests.factories import adjustments_of, seed, stock_of

pytestmark = pytest.mark.asyncio


async def test_plan_resolves_prices_and_cumulative_decrements(session_factory, session):
    cid, (a, b) = await seed(
        session_factory,
        items=[
            {"sku": "SKU-A", "quantity": 10, "price": "2.50"},
            {"sku": "SKU-B", "quantity": 3, "price": "7.00"},
        ],
    )

    plan = await reserve(
        session,
        customer_id=cid,
        lines=[
            ReserveLine(item_id=a, quantity=4),
            ReserveLine(item_id=b, quantity=1, unit_price_override=Decimal("5")),
            ReserveLine(item_id=a, quantity=2),
        ],
        customers=SqlCustomerLookup(),
    )

    assert plan.customer_id == cid
    assert [ln.unit_price for ln in plan.lines] == [Decimal("2.50"), Decimal("5.00"), Decimal("2.50")]
    assert plan.subtotal == Decimal("20.00")
    # one decrement per line, expected quantities are cumulative per item
    assert [(d.item_id, d.quantity, d.expected_new_quantity) for d in plan.decrements] == [
        (a, 4, 6),
        (b, 1, 2),
        (a, 2, 4),
    ]
    assert [adj.action for adj in plan.adjustments] == ["REMOVE", "REMOVE", "REMOVE"]
    assert {adj.notes for adj in plan.adjustments} == {"Removed for order"}
    assert plan.item_ids == (a, b)


async def test_reservation_writes_nothing(session_factory, session):
    cid, (a,) = await seed(session_factory, items=[{"quantity": 5}])

    await reserve(session, customer_id=cid, lines=[ReserveLine(a, 5)], customers=SqlCustomerLookup())
    await session.rollback()

    assert await stock_of(session_factory, a) == 5
    assert await adjustments_of(session_factory, a) == []


async def test_shortage_is_checked_against_the_sum_of_lines(session_factory, session):
    cid, (a,) = await seed(session_factory, items=[{"quantity": 5}])

    with pytest.raises(InsufficientStock) as ei:
        await reserve(
            session,
            customer_id=cid,
            lines=[ReserveLine(a, 3), ReserveLine(a, 3)],
            customers=SqlCustomerLookup(),
        )
    assert ei.value.item_id == a
    assert ei.value.available == 5
    assert ei.value.requested == 6


async def test_unknown_customer(session_factory, session):
    _, (a,) = await seed(session_factory, items=[{"quantity": 5}])

    with pytest.raises(NotFound) as ei:
        await reserve(session, customer_id=999, lines=[ReserveLine(a, 1)], customers=SqlCustomerLookup())
    assert ei.value.entity_kind == "customer"


async def test_unknown_item(session_factory, session):
    cid, _ = await seed(session_factory, items=[])

    with pytest.raises(NotFound) as ei:
        await reserve(session, customer_id=cid, lines=[ReserveLine(404, 1)], customers=SqlCustomerLookup())
    assert ei.value.entity_kind == "inventory_item"
    assert ei.value.entity_id == 404


@pytest.mark.parametrize(
    "lines,field",
    [
        ([], "lines"),
        ([ReserveLine(1, 0)], "lines[0].quantity"),
        ([ReserveLine(1, 1), ReserveLine(1, -2)], "lines[1].quantity"),
        ([ReserveLine(1, 1, unit_price_override=Decimal("-1"))], "lines[0].unit_price_override"),
        ([ReserveLine(2**70, 1)], "lines[0].item_id"),
        ([ReserveLine(1, 2**31)], "lines[0].quantity"),
    ],
)
async def test_malformed_lines(session_factory, session, lines, field):
    cid, _ = await seed(session_factory, items=[])

    with pytest.raises(ValidationError) as ei:
        await reserve(session, customer_id=cid, lines=lines, customers=SqlCustomerLookup())
    assert ei.value.field == field


async def test_customer_id_beyond_integer_column(session_factory, session):
    _, (a,) = await seed(session_factory, items=[{"quantity": 5}])

    with pytest.raises(ValidationError) as ei:
        await reserve(session, customer_id=2**70, lines=[ReserveLine(a, 1)], customers=SqlCustomerLookup())
    assert ei.value.field == "customer_id"
