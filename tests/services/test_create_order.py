# tests/services/test_create_order.py
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from app.models.enums import OrderStatus, PaymentStatus
from app.services import inventory_ledger
from app.services.customer_lookup import SqlCustomerLookup
from app.services.errors import ConcurrencyConflict, InsufficientStock, ValidationError
from app.services.stock_reservation import ReserveLine, reserve
from tests.factories import adjustments_of, count_orders, notifications_of, seed, stock_of

pytestmark = pytest.mark.asyncio


async def test_scenario_single_item_low_stock(order_service, session_factory):
    cid, (item_id,) = await seed(
        session_factory, items=[{"sku": "SKU-1", "quantity": 5, "reorder_level": 2, "price": "10.00"}]
    )

    order = await order_service.create_order(
        customer_id=cid,
        lines=[ReserveLine(item_id, 4)],
        acting_user="u-staff",
    )

    assert order.order_number == "ORD-00001"
    assert order.subtotal == Decimal("40.00")
    assert order.total == Decimal("40.00")
    assert order.status == OrderStatus.PENDING.value
    assert [(ln.sku, ln.quantity, ln.price) for ln in order.items] == [("SKU-1", 4, Decimal("10.00"))]
    assert order.payment.status == PaymentStatus.PENDING.value
    assert order.payment.amount == order.total
    assert [(e.status, e.notes, e.user_id) for e in order.status_history] == [
        ("PENDING", "Order created", "u-staff")
    ]

    assert await stock_of(session_factory, item_id) == 1
    adjs = await adjustments_of(session_factory, item_id)
    assert [(a.action, a.quantity, a.notes, a.user_id) for a in adjs] == [
        ("REMOVE", 4, "Removed for order", "u-staff")
    ]

    notes = await notifications_of(session_factory)
    assert len(notes) == 1
    assert notes[0].type == "LOW_STOCK"
    assert notes[0].user_id == "u-staff"
    assert notes[0].meta == {"item_id": item_id, "sku": "SKU-1", "quantity": 1, "reorder_level": 2}

    with pytest.raises(InsufficientStock):
        await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 3)], acting_user="u-staff")
    assert await stock_of(session_factory, item_id) == 1
    assert await count_orders(session_factory) == 1


async def test_discount_and_tax(order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 10, "price": "10.00"}])

    order = await order_service.create_order(
        customer_id=cid,
        lines=[ReserveLine(item_id, 2)],
        discount=Decimal("5"),
        tax=Decimal("1.50"),
        payment_method="CASH",
    )

    assert order.total == Decimal("16.50")
    assert order.payment.amount == Decimal("16.50")
    assert order.payment.method == "CASH"


async def test_every_line_gets_its_own_ledger_row(order_service, session_factory):
    cid, (a, b) = await seed(session_factory, items=[{"quantity": 20}, {"quantity": 20}])

    await order_service.create_order(
        customer_id=cid,
        lines=[ReserveLine(a, 2), ReserveLine(b, 3), ReserveLine(a, 1)],
        acting_user="u-1",
    )

    assert [(x.action, x.quantity) for x in await adjustments_of(session_factory, a)] == [
        ("REMOVE", 2),
        ("REMOVE", 1),
    ]
    assert [(x.action, x.quantity) for x in await adjustments_of(session_factory, b)] == [("REMOVE", 3)]
    assert await stock_of(session_factory, a) == 17
    assert await stock_of(session_factory, b) == 17


async def test_stock_is_taken_in_item_order_whatever_the_line_order(order_service, session_factory):
    cid, (a, b) = await seed(session_factory, items=[{"quantity": 20}, {"quantity": 20}])
    assert a < b

    order = await order_service.create_order(
        customer_id=cid,
        lines=[ReserveLine(b, 3), ReserveLine(a, 2), ReserveLine(b, 1)],
        acting_user="u-1",
    )

    assert [ln.item_id for ln in order.items] == [b, a, b]
    rows_a = await adjustments_of(session_factory, a)
    rows_b = await adjustments_of(session_factory, b)
    assert [x.quantity for x in rows_a] == [2]
    assert [x.quantity for x in rows_b] == [3, 1]
    assert rows_a[0].id < min(x.id for x in rows_b)

    await order_service.cancel_order(order_id=order.id, acting_user="u-1")
    back_a = [x for x in await adjustments_of(session_factory, a) if x.action == "ADD"]
    back_b = [x for x in await adjustments_of(session_factory, b) if x.action == "ADD"]
    assert back_a[0].id < min(x.id for x in back_b)


async def test_failure_after_validation_leaves_no_trace(order_service, session_factory):
    cid, (a, b) = await seed(session_factory, items=[{"quantity": 10}, {"quantity": 1}])

    with pytest.raises(InsufficientStock):
        await order_service.create_order(
            customer_id=cid,
            lines=[ReserveLine(a, 2), ReserveLine(b, 2)],
        )

    with pytest.raises(ValidationError):
        await order_service.create_order(
            customer_id=cid,
            lines=[ReserveLine(a, 2)],
            payment_method="BITCOIN",
        )

    assert await stock_of(session_factory, a) == 10
    assert await stock_of(session_factory, b) == 1
    assert await adjustments_of(session_factory, a) == []
    assert await count_orders(session_factory) == 0
    assert await notifications_of(session_factory) == []


@pytest.mark.parametrize("consume,alerts", [(6, 1), (4, 0)])
async def test_low_stock_threshold(order_service, session_factory, consume, alerts):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 10, "reorder_level": 5}])

    await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, consume)], acting_user="u-1")

    assert len(await notifications_of(session_factory, "u-1")) == alerts


async def test_configured_inbox_receives_alerts(order_service, session_factory, monkeypatch):
    from app.core.config import get_settings

    monkeypatch.setattr(get_settings(), "LOW_STOCK_NOTIFY_USER_ID", "admin")
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 3, "reorder_level": 5}])

    await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)], acting_user="u-1")

    assert [n.user_id for n in await notifications_of(session_factory)] == ["admin"]


async def test_alert_without_recipient_is_not_written(order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 3, "reorder_level": 5}])

    order = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])

    assert order.status_history[0].user_id is None
    assert await stock_of(session_factory, item_id) == 2
    assert await notifications_of(session_factory) == []


async def test_configured_inbox_covers_anonymous_calls(order_service, session_factory, monkeypatch):
    from app.core.config import get_settings

    monkeypatch.setattr(get_settings(), "LOW_STOCK_NOTIFY_USER_ID", "admin")
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 3, "reorder_level": 5}])

    await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])

    assert [n.user_id for n in await notifications_of(session_factory)] == ["admin"]


async def test_order_numbers_are_sequential(order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 10}])

    first = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])
    second = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])

    assert (first.order_number, second.order_number) == ("ORD-00001", "ORD-00002")


async def test_order_number_not_reused_after_hard_delete(order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 10}])

    first = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])
    second = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])
    await order_service.delete_order(order_id=first.id)

    third = await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])
    assert second.order_number == "ORD-00002"
    assert third.order_number == "ORD-00003"


async def test_stale_plan_loses_the_conditional_decrement(session_factory, clock):
    """The stock check and the decrement race: the guarded UPDATE refuses."""
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 5}])

    async with session_factory() as s:
        plan = await reserve(s, customer_id=cid, lines=[ReserveLine(item_id, 4)], customers=SqlCustomerLookup())

    # a competing writer takes most of the stock
    async with session_factory() as s:
        async with s.begin():
            await inventory_ledger.decrement(s, item_id=item_id, quantity=3, user_id="other", now=clock.now())

    async with session_factory() as s:
        with pytest.raises(ConcurrencyConflict):
            async with s.begin():
                for d in plan.decrements:
                    await inventory_ledger.decrement(
                        s, item_id=d.item_id, quantity=d.quantity, user_id="u-1", now=clock.now()
                    )

    assert await stock_of(session_factory, item_id) == 2
    assert [a.user_id for a in await adjustments_of(session_factory, item_id)] == ["other"]


async def test_concurrent_orders_never_oversell(order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 10, "reorder_level": 0}])

    results = await asyncio.gather(
        *[
            order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 3)], acting_user=f"u-{i}")
            for i in range(5)
        ],
        return_exceptions=True,
    )

    placed = [r for r in results if not isinstance(r, BaseException)]
    failed = [r for r in results if isinstance(r, BaseException)]
    assert all(isinstance(e, (InsufficientStock, ConcurrencyConflict)) for e in failed), failed
    assert 1 <= len(placed) <= 3

    remaining = await stock_of(session_factory, item_id)
    assert remaining == 10 - 3 * len(placed)
    assert remaining >= 0
    assert len(await adjustments_of(session_factory, item_id)) == len(placed)
    assert len({o.order_number for o in placed}) == len(placed)
