# tests/services/test_inventory_service.py
from __future__ import annotations

from decimal import Decimal

import pytest

from app.services.errors import NotFound, ValidationError
from app.services.stock_reservation import ReserveLine
from tests.factories import adjustments_of, notifications_of, seed, stock_of

pytestmark = pytest.mark.asyncio


async def test_create_item_writes_initial_ledger_row(inventory_service, session_factory):
    item = await inventory_service.create_item(
        sku="  BOLT-10 ",
        name="Bolt M10",
        quantity=40,
        reorder_level=5,
        cost="0.10",
        price="0.35",
        acting_user="u-1",
    )

    assert item.sku == "BOLT-10"
    assert item.unit == "each"
    assert item.price == Decimal("0.35")
    rows = await adjustments_of(session_factory, item.id)
    assert [(r.action, r.quantity, r.notes, r.user_id) for r in rows] == [("CREATE", 40, "Initial stock", "u-1")]
    assert await notifications_of(session_factory) == []


async def test_create_empty_item_has_no_ledger_but_alerts(inventory_service, session_factory):
    item = await inventory_service.create_item(sku="NUT-1", name="Nut", quantity=0, reorder_level=3, acting_user="u-1")

    assert await adjustments_of(session_factory, item.id) == []
    [n] = await notifications_of(session_factory, "u-1")
    assert n.type == "LOW_STOCK"
    assert n.item_id == item.id


async def test_low_item_without_recipient_raises_no_alert(inventory_service, session_factory, monkeypatch):
    item = await inventory_service.create_item(sku="NUT-2", name="Nut", quantity=1, reorder_level=3)
    assert await notifications_of(session_factory) == []

    from app.core.config import get_settings

    monkeypatch.setattr(get_settings(), "LOW_STOCK_NOTIFY_USER_ID", "stock-desk")
    await inventory_service.adjust_quantity(item_id=item.id, new_quantity=5)
    await inventory_service.adjust_quantity(item_id=item.id, new_quantity=0)
    assert [(n.user_id, n.item_id) for n in await notifications_of(session_factory)] == [("stock-desk", item.id)]


async def test_duplicate_sku_and_bad_values_are_rejected(inventory_service):
    await inventory_service.create_item(sku="DUP-1", name="First")

    with pytest.raises(ValidationError) as ei:
        await inventory_service.create_item(sku="DUP-1", name="Second")
    assert ei.value.field == "sku"

    with pytest.raises(ValidationError):
        await inventory_service.create_item(sku="NEG-1", name="Negative", quantity=-1)
    with pytest.raises(ValidationError):
        await inventory_service.create_item(sku="   ", name="Blank")
    with pytest.raises(ValidationError) as ei:
        await inventory_service.create_item(sku="BIG-1", name="Huge", reorder_level=2**40)
    assert ei.value.field == "reorder_level"


async def test_adjust_up_and_down_writes_signed_ledger(inventory_service, session_factory):
    _, (item_id,) = await seed(session_factory, items=[{"quantity": 10, "reorder_level": 2}])

    up = await inventory_service.adjust_quantity(item_id=item_id, new_quantity=15, acting_user="u-1")
    down = await inventory_service.adjust_quantity(item_id=item_id, new_quantity=12, notes="damaged", acting_user="u-1")

    assert (up.quantity, down.quantity) == (15, 12)
    rows = await adjustments_of(session_factory, item_id)
    assert [(r.action, r.quantity, r.notes) for r in rows] == [
        ("ADD", 5, "Manual add"),
        ("REMOVE", 3, "damaged"),
    ]


async def test_adjust_to_same_quantity_is_a_noop(inventory_service, session_factory):
    _, (item_id,) = await seed(session_factory, items=[{"quantity": 7}])

    item = await inventory_service.adjust_quantity(item_id=item_id, new_quantity=7)

    assert item.quantity == 7
    assert await adjustments_of(session_factory, item_id) == []


async def test_adjust_alerts_only_when_crossing_reorder_level(inventory_service, session_factory):
    _, (item_id,) = await seed(session_factory, items=[{"quantity": 10, "reorder_level": 4}])

    await inventory_service.adjust_quantity(item_id=item_id, new_quantity=6, acting_user="u-1")
    assert await notifications_of(session_factory) == []

    await inventory_service.adjust_quantity(item_id=item_id, new_quantity=4, acting_user="u-1")
    await inventory_service.adjust_quantity(item_id=item_id, new_quantity=2, acting_user="u-1")

    alerts = await notifications_of(session_factory, "u-1")
    assert len(alerts) == 1
    assert alerts[0].meta["quantity"] == 4


async def test_adjust_rejects_negative_and_unknown(inventory_service, session_factory):
    _, (item_id,) = await seed(session_factory, items=[{"quantity": 3}])

    with pytest.raises(ValidationError):
        await inventory_service.adjust_quantity(item_id=item_id, new_quantity=-1)
    with pytest.raises(NotFound):
        await inventory_service.adjust_quantity(item_id=999, new_quantity=1)
    with pytest.raises(ValidationError):
        await inventory_service.adjust_quantity(item_id=item_id, new_quantity=2**70)
    with pytest.raises(NotFound):
        await inventory_service.adjust_quantity(item_id=2**70, new_quantity=1)
    assert await stock_of(session_factory, item_id) == 3


async def test_update_item_fields(inventory_service, session_factory):
    _, (a, b) = await seed(session_factory, items=[{"sku": "A-1"}, {"sku": "B-1"}])

    item = await inventory_service.update_item(item_id=a, fields={"name": "Renamed", "price": "12.50"})
    assert (item.name, item.price) == ("Renamed", Decimal("12.50"))

    with pytest.raises(ValidationError):
        await inventory_service.update_item(item_id=a, fields={"sku": "B-1"})
    with pytest.raises(ValidationError):
        await inventory_service.update_item(item_id=a, fields={"quantity": 99})
    with pytest.raises(NotFound):
        await inventory_service.update_item(item_id=999, fields={"name": "x"})


async def test_delete_item_removes_history_and_notifications(inventory_service, session_factory):
    item = await inventory_service.create_item(sku="GONE-1", name="Gone", quantity=1, reorder_level=2, acting_user="u-1")
    assert len(await notifications_of(session_factory)) == 1

    await inventory_service.delete_item(item_id=item.id, acting_user="u-1")

    assert await stock_of(session_factory, item.id) is None
    assert await adjustments_of(session_factory, item.id) == []
    assert await notifications_of(session_factory) == []
    with pytest.raises(NotFound):
        await inventory_service.get_item(item.id)


async def test_delete_item_referenced_by_order_is_refused(inventory_service, order_service, session_factory):
    cid, (item_id,) = await seed(session_factory, items=[{"quantity": 5, "reorder_level": 0}])
    await order_service.create_order(customer_id=cid, lines=[ReserveLine(item_id, 1)])

    with pytest.raises(ValidationError):
        await inventory_service.delete_item(item_id=item_id)
    assert await stock_of(session_factory, item_id) == 4


async def test_list_items_filters(inventory_service, session_factory):
    await seed(
        session_factory,
        items=[
            {"sku": "CAB-1", "name": "HDMI cable", "quantity": 50, "reorder_level": 5, "category": "cables"},
            {"sku": "CAB-2", "name": "USB cable", "quantity": 3, "reorder_level": 5, "category": "cables"},
            {"sku": "MON-1", "name": "Monitor", "quantity": 2, "reorder_level": 2, "category": "screens"},
        ],
    )

    rows, total = await inventory_service.list_items(search="CABLE")
    assert total == 2
    assert {r.sku for r in rows} == {"CAB-1", "CAB-2"}

    rows, total = await inventory_service.list_items(low_stock=True)
    assert {r.sku for r in rows} == {"CAB-2", "MON-1"}

    rows, total = await inventory_service.list_items(category="cables", low_stock=True)
    assert [r.sku for r in rows] == ["CAB-2"]

    rows, total = await inventory_service.list_items(limit=1, offset=1)
    assert (len(rows), total) == (1, 3)


async def test_history_newest_first(inventory_service, session_factory):
    item = await inventory_service.create_item(sku="H-1", name="History", quantity=5)
    await inventory_service.adjust_quantity(item_id=item.id, new_quantity=8)
    await inventory_service.adjust_quantity(item_id=item.id, new_quantity=6)

    rows, total = await inventory_service.history(item_id=item.id, limit=2)

    assert total == 3
    assert [(r.action, r.quantity) for r in rows] == [("REMOVE", 2), ("ADD", 3)]
    with pytest.raises(NotFound):
        await inventory_service.history(item_id=999)
