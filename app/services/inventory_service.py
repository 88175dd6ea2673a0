# app/services/inventory_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.tx import TxManager
from app.db.base import MAX_INT
from app.models.enums import InventoryAction
from app.models.inventory_adjustment import InventoryAdjustment
from app.models.inventory_item import InventoryItem
from app.models.notification import Notification
from app.models.order_item import OrderItem
from app.ports import Clock, NotificationSink, SystemClock
from app.services import inventory_ledger
from app.services.errors import NotFound, ValidationError
from app.services.notification_sink import SqlNotificationSink, emit_best_effort, low_stock_alerts
from app.services.order_utils import to_money

log = logging.getLogger("stockdesk.inventory")

NOTE_INITIAL_STOCK = "Initial stock"

# fields update_item may touch; quantity goes through adjust_quantity only
_EDITABLE = ("sku", "name", "description", "category", "location", "reorder_level", "cost", "price", "unit")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def _require_text(field: str, value: Optional[str]) -> str:
    v = _clean_text(value)
    if not v:
        raise ValidationError(field, "required")
    return v


def _non_negative_int(field: str, value: Any) -> int:
    n = int(value)
    if n < 0:
        raise ValidationError(field, "must be >= 0")
    if n > MAX_INT:
        raise ValidationError(field, "too large")
    return n


def _non_negative_money(field: str, value: Any) -> Decimal:
    m = to_money(value)
    if m < 0:
        raise ValidationError(field, "must be >= 0")
    return m


async def _sku_taken(session: AsyncSession, sku: str, *, exclude_id: Optional[int] = None) -> bool:
    stmt = select(InventoryItem.id).where(InventoryItem.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(InventoryItem.id != int(exclude_id))
    return (await session.execute(stmt.limit(1))).scalar_one_or_none() is not None


class InventoryService:
    """
    Stock item maintenance.

    Every quantity change writes one inventory_adjustments row in the same
    unit of work; low-stock checks run after commit.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Optional[Clock] = None,
        sink: Optional[NotificationSink] = None,
        tx: Optional[TxManager] = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.sink = sink or SqlNotificationSink(session_factory, clock=self.clock)
        self.tx = tx or TxManager(session_factory)

    async def create_item(
        self,
        *,
        sku: str,
        name: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        quantity: int = 0,
        reorder_level: int = 0,
        cost: Any = 0,
        price: Any = 0,
        unit: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> InventoryItem:
        sku_v = _require_text("sku", sku)
        name_v = _require_text("name", name)
        qty = _non_negative_int("quantity", quantity)
        reorder = _non_negative_int("reorder_level", reorder_level)
        cost_v = _non_negative_money("cost", cost)
        price_v = _non_negative_money("price", price)

        async def _uow(session: AsyncSession) -> InventoryItem:
            if await _sku_taken(session, sku_v):
                raise ValidationError("sku", "an item with this SKU already exists")

            now = self.clock.now()
            item = InventoryItem(
                sku=sku_v,
                name=name_v,
                description=_clean_text(description),
                category=_clean_text(category),
                location=_clean_text(location),
                quantity=qty,
                reorder_level=reorder,
                cost=cost_v,
                price=price_v,
                unit=_clean_text(unit) or "each",
                created_at=now,
                updated_at=now,
            )
            session.add(item)
            await session.flush()

            if qty > 0:
                await inventory_ledger.write_adjustment(
                    session,
                    item_id=item.id,
                    action=InventoryAction.CREATE,
                    quantity=qty,
                    notes=NOTE_INITIAL_STOCK,
                    user_id=acting_user,
                    created_at=now,
                )
            return item

        item = await self.tx.run(_uow, op="item_create")
        log.info("item created: id=%s sku=%s qty=%s user=%s", item.id, item.sku, item.quantity, acting_user)

        await emit_best_effort(self.sink, low_stock_alerts([item], acting_user=acting_user))
        return item

    async def adjust_quantity(
        self,
        *,
        item_id: int,
        new_quantity: int,
        notes: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> InventoryItem:
        """
        Manual stock correction. A LOW_STOCK alert is raised only when the
        change crosses the reorder level from above.
        """

        async def _uow(session: AsyncSession) -> Tuple[InventoryItem, int]:
            item = await inventory_ledger.require_item(session, item_id)
            before = int(item.quantity)
            await inventory_ledger.set_quantity(
                session,
                item=item,
                new_quantity=new_quantity,
                user_id=acting_user,
                now=self.clock.now(),
                notes=_clean_text(notes),
            )
            fresh = await inventory_ledger.load_items(session, [item.id])
            return fresh[0], before

        item, before = await self.tx.run(_uow, op="item_adjust")
        if int(item.quantity) == before:
            return item

        log.info("item %s quantity %s -> %s by %s", item.sku, before, item.quantity, acting_user)
        if before > int(item.reorder_level):
            await emit_best_effort(self.sink, low_stock_alerts([item], acting_user=acting_user))
        return item

    async def update_item(self, *, item_id: int, fields: Mapping[str, Any]) -> InventoryItem:
        """Non-quantity fields only; order lines keep their own price/sku snapshot."""
        unknown = sorted(set(fields) - set(_EDITABLE))
        if unknown:
            raise ValidationError(unknown[0], "field cannot be updated here")

        changes: Dict[str, Any] = {}
        for key, value in fields.items():
            if key in ("sku", "name"):
                changes[key] = _require_text(key, value)
            elif key == "reorder_level":
                changes[key] = _non_negative_int(key, value)
            elif key in ("cost", "price"):
                changes[key] = _non_negative_money(key, value)
            elif key == "unit":
                changes[key] = _clean_text(value) or "each"
            else:
                changes[key] = _clean_text(value)

        async def _uow(session: AsyncSession) -> InventoryItem:
            item = await inventory_ledger.require_item(session, item_id)
            if "sku" in changes and changes["sku"] != item.sku:
                if await _sku_taken(session, changes["sku"], exclude_id=item.id):
                    raise ValidationError("sku", "an item with this SKU already exists")
            for key, value in changes.items():
                setattr(item, key, value)
            if changes:
                item.updated_at = self.clock.now()
            await session.flush()
            return item

        return await self.tx.run(_uow, op="item_update")

    async def delete_item(self, *, item_id: int, acting_user: Optional[str] = None) -> None:
        """
        Removes the item with its notifications and ledger rows. Items named
        by any order line stay (order history must keep resolving).
        """

        async def _uow(session: AsyncSession) -> str:
            item = await inventory_ledger.require_item(session, item_id)
            refs = (
                await session.execute(select(func.count(OrderItem.id)).where(OrderItem.item_id == item.id))
            ).scalar_one()
            if refs:
                raise ValidationError("item_id", f"item is referenced by {refs} order line(s)")

            sku = item.sku
            await session.execute(delete(Notification).where(Notification.item_id == item.id))
            await session.execute(delete(InventoryAdjustment).where(InventoryAdjustment.item_id == item.id))
            await session.delete(item)
            await session.flush()
            return sku

        sku = await self.tx.run(_uow, op="item_delete")
        log.warning("item %s (id=%s) deleted by %s", sku, item_id, acting_user)

    # ---------------- queries ----------------

    async def get_item(self, item_id: int) -> InventoryItem:
        async with self.session_factory() as session:
            return await inventory_ledger.require_item(session, item_id)

    async def list_items(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        low_stock: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[InventoryItem], int]:
        conds = []
        if category:
            conds.append(InventoryItem.category == category)
        q_raw = (search or "").strip()
        if q_raw:
            q_like = f"%{q_raw.lower()}%"
            conds.append(
                or_(
                    func.lower(InventoryItem.name).like(q_like),
                    func.lower(InventoryItem.sku).like(q_like),
                    func.lower(func.coalesce(InventoryItem.description, "")).like(q_like),
                )
            )
        if low_stock:
            conds.append(InventoryItem.quantity <= InventoryItem.reorder_level)

        stmt = select(InventoryItem)
        count_stmt = select(func.count(InventoryItem.id))
        for c in conds:
            stmt = stmt.where(c)
            count_stmt = count_stmt.where(c)
        stmt = stmt.order_by(InventoryItem.updated_at.desc(), InventoryItem.id.desc()).limit(limit).offset(offset)

        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            total = (await session.execute(count_stmt)).scalar_one()
            return list(rows), int(total)

    async def history(self, *, item_id: int, limit: int = 50, offset: int = 0) -> Tuple[List[InventoryAdjustment], int]:
        async with self.session_factory() as session:
            await inventory_ledger.require_item(session, item_id)
            return await inventory_ledger.history(session, item_id=item_id, limit=limit, offset=offset)
