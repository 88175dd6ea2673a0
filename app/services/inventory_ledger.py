# app/services/inventory_ledger.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import MAX_INT
from app.models.enums import InventoryAction
from app.models.inventory_adjustment import InventoryAdjustment
from app.models.inventory_item import InventoryItem
from app.services.errors import ConcurrencyConflict, NotFound, ValidationError

NOTE_ORDER_REMOVE = "Removed for order"
NOTE_ORDER_RETURN = "Returned due to order cancellation"


async def get_item(session: AsyncSession, item_id: int) -> Optional[InventoryItem]:
    if not item_id or not 0 < int(item_id) <= MAX_INT:
        return None
    return await session.get(InventoryItem, int(item_id))


async def require_item(session: AsyncSession, item_id: int) -> InventoryItem:
    item = await get_item(session, item_id)
    if item is None:
        raise NotFound("inventory_item", item_id)
    return item


async def load_items(session: AsyncSession, item_ids: Sequence[int]) -> List[InventoryItem]:
    """Fresh snapshots (identity map overwritten with the current row values)."""
    if not item_ids:
        return []
    stmt = (
        select(InventoryItem)
        .where(InventoryItem.id.in_([int(i) for i in item_ids]))
        .order_by(InventoryItem.id)
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())


async def write_adjustment(
    session: AsyncSession,
    *,
    item_id: int,
    action: Union[str, InventoryAction],
    quantity: int,
    notes: Optional[str],
    user_id: Optional[str],
    created_at: datetime,
) -> InventoryAdjustment:
    """
    Append one ledger row (never updated afterwards).

    quantity is the positive size of the change; the direction is the action.
    """
    qty = int(quantity)
    if qty <= 0:
        raise ValueError(f"ledger quantity must be positive, got {qty}")

    row = InventoryAdjustment(
        item_id=int(item_id),
        action=InventoryAction(action).value,
        quantity=qty,
        notes=notes,
        user_id=user_id,
        created_at=created_at,
    )
    session.add(row)
    await session.flush()
    return row


async def decrement(
    session: AsyncSession,
    *,
    item_id: int,
    quantity: int,
    user_id: Optional[str],
    now: datetime,
    notes: str = NOTE_ORDER_REMOVE,
) -> int:
    """
    Conditional stock decrement + REMOVE ledger row; returns the new quantity.

        UPDATE inventory_items
           SET quantity = quantity - :n
         WHERE id = :id AND quantity >= :n
        RETURNING quantity

    Zero rows means the stock changed after it was validated (or the item
    vanished): the unit of work must abort.
    """
    qty = int(quantity)
    res = await session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == int(item_id))
        .where(InventoryItem.quantity >= qty)
        .values(quantity=InventoryItem.quantity - qty, updated_at=now)
        .returning(InventoryItem.quantity)
        .execution_options(synchronize_session="evaluate")
    )
    new_qty = res.scalar_one_or_none()
    if new_qty is None:
        exists = await session.execute(select(InventoryItem.id).where(InventoryItem.id == int(item_id)))
        if exists.scalar_one_or_none() is None:
            raise NotFound("inventory_item", item_id)
        raise ConcurrencyConflict(f"stock of item={item_id} changed concurrently")

    await write_adjustment(
        session,
        item_id=item_id,
        action=InventoryAction.REMOVE,
        quantity=qty,
        notes=notes,
        user_id=user_id,
        created_at=now,
    )
    return int(new_qty)


async def increment(
    session: AsyncSession,
    *,
    item_id: int,
    quantity: int,
    user_id: Optional[str],
    now: datetime,
    notes: str = NOTE_ORDER_RETURN,
) -> Optional[int]:
    """
    Atomic stock increment + ADD ledger row; returns the new quantity, or
    None when the item no longer exists (nothing is written then).
    """
    qty = int(quantity)
    res = await session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == int(item_id))
        .values(quantity=InventoryItem.quantity + qty, updated_at=now)
        .returning(InventoryItem.quantity)
        .execution_options(synchronize_session="evaluate")
    )
    new_qty = res.scalar_one_or_none()
    if new_qty is None:
        return None

    await write_adjustment(
        session,
        item_id=item_id,
        action=InventoryAction.ADD,
        quantity=qty,
        notes=notes,
        user_id=user_id,
        created_at=now,
    )
    return int(new_qty)


async def set_quantity(
    session: AsyncSession,
    *,
    item: InventoryItem,
    new_quantity: int,
    user_id: Optional[str],
    now: datetime,
    notes: Optional[str] = None,
) -> Optional[InventoryAdjustment]:
    """
    Manual stock correction to an absolute quantity.

    - optimistic: the write only applies if quantity still equals the value
      read by the caller, otherwise ConcurrencyConflict
    - one ADD / REMOVE ledger row with |delta|; unchanged quantity is a no-op
    """
    target = int(new_quantity)
    if target < 0:
        raise ValidationError("quantity", "must be >= 0")
    if target > MAX_INT:
        raise ValidationError("quantity", "too large")

    before = int(item.quantity)
    delta = target - before
    if delta == 0:
        return None

    res = await session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item.id)
        .where(InventoryItem.quantity == before)
        .values(quantity=target, updated_at=now)
        .returning(InventoryItem.quantity)
        .execution_options(synchronize_session="evaluate")
    )
    if res.scalar_one_or_none() is None:
        raise ConcurrencyConflict(f"stock of item={item.id} changed concurrently")

    action = InventoryAction.ADD if delta > 0 else InventoryAction.REMOVE
    return await write_adjustment(
        session,
        item_id=item.id,
        action=action,
        quantity=abs(delta),
        notes=notes or f"Manual {action.value.lower()}",
        user_id=user_id,
        created_at=now,
    )


async def history(
    session: AsyncSession,
    *,
    item_id: int,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[InventoryAdjustment], int]:
    """Ledger rows of one item, newest first, plus the total count."""
    rows = (
        (
            await session.execute(
                select(InventoryAdjustment)
                .where(InventoryAdjustment.item_id == int(item_id))
                .order_by(InventoryAdjustment.created_at.desc(), InventoryAdjustment.id.desc())
                .limit(limit)
                .offset(offset)
            )
        )
        .scalars()
        .all()
    )
    total = (
        await session.execute(
            select(func.count(InventoryAdjustment.id)).where(InventoryAdjustment.item_id == int(item_id))
        )
    ).scalar_one()
    return list(rows), int(total)
