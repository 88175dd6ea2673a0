# app/services/stock_reservation.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import MAX_INT
from app.models.enums import InventoryAction
from app.models.inventory_item import InventoryItem
from app.ports import CustomerLookup
from app.services.errors import InsufficientStock, NotFound, ValidationError
from app.services.inventory_ledger import NOTE_ORDER_REMOVE
from app.services.order_utils import to_money

log = logging.getLogger("stockdesk.orders")


@dataclass(frozen=True)
class ReserveLine:
    item_id: int
    quantity: int
    unit_price_override: Optional[Decimal] = None


@dataclass(frozen=True)
class PlannedLine:
    """Resolved order line: price and sku/name are frozen here."""

    item_id: int
    sku: str
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def amount(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class PlannedDecrement:
    item_id: int
    quantity: int
    expected_new_quantity: int
    reorder_level: int


@dataclass(frozen=True)
class PendingAdjustment:
    item_id: int
    action: str
    quantity: int
    notes: str


@dataclass(frozen=True)
class ReservationPlan:
    """
    Validated, not-yet-applied stock plan for one order.

    One decrement and one pending REMOVE adjustment per line (lines naming
    the same item stay separate; expected_new_quantity is cumulative).
    """

    customer_id: int
    lines: Tuple[PlannedLine, ...]
    subtotal: Decimal
    decrements: Tuple[PlannedDecrement, ...]
    adjustments: Tuple[PendingAdjustment, ...]

    @property
    def item_ids(self) -> Tuple[int, ...]:
        seen: Dict[int, None] = {}
        for d in self.decrements:
            seen.setdefault(d.item_id, None)
        return tuple(seen)


def validate_lines(lines: Sequence[ReserveLine]) -> None:
    if not lines:
        raise ValidationError("lines", "at least one line item is required")
    for i, line in enumerate(lines):
        if line.item_id is None or not 0 < int(line.item_id) <= MAX_INT:
            raise ValidationError(f"lines[{i}].item_id", "must be a positive id")
        if line.quantity is None or int(line.quantity) <= 0:
            raise ValidationError(f"lines[{i}].quantity", "must be > 0")
        if int(line.quantity) > MAX_INT:
            raise ValidationError(f"lines[{i}].quantity", "too large")
        if line.unit_price_override is not None and Decimal(line.unit_price_override) < 0:
            raise ValidationError(f"lines[{i}].unit_price_override", "must be >= 0")


async def reserve(
    session: AsyncSession,
    *,
    customer_id: int,
    lines: Sequence[ReserveLine],
    customers: CustomerLookup,
) -> ReservationPlan:
    """
    Validate an order request against current stock and compute the plan.

    Side-effect free: reads only. Stock is checked per item against the sum
    of all lines naming it; the first shortage fails the whole request.
    """
    if customer_id is None or int(customer_id) <= 0:
        raise ValidationError("customer_id", "required")
    if int(customer_id) > MAX_INT:
        raise ValidationError("customer_id", "must be a valid id")
    validate_lines(lines)

    if not await customers.exists(session, int(customer_id)):
        raise NotFound("customer", customer_id)

    wanted_ids = sorted({int(line.item_id) for line in lines})
    rows = (
        (await session.execute(select(InventoryItem).where(InventoryItem.id.in_(wanted_ids))))
        .scalars()
        .all()
    )
    items: Dict[int, InventoryItem] = {int(r.id): r for r in rows}

    requested: Dict[int, int] = {}
    for line in lines:
        item_id = int(line.item_id)
        if item_id not in items:
            raise NotFound("inventory_item", item_id)
        requested[item_id] = requested.get(item_id, 0) + int(line.quantity)

    for item_id, qty in requested.items():
        available = int(items[item_id].quantity)
        if qty > available:
            log.info("reserve rejected: item=%s requested=%s available=%s", item_id, qty, available)
            raise InsufficientStock(item_id, available, qty)

    planned: list[PlannedLine] = []
    decrements: list[PlannedDecrement] = []
    adjustments: list[PendingAdjustment] = []
    running: Dict[int, int] = {item_id: int(item.quantity) for item_id, item in items.items()}
    subtotal = Decimal("0")

    for line in lines:
        item = items[int(line.item_id)]
        qty = int(line.quantity)
        unit_price = to_money(line.unit_price_override if line.unit_price_override is not None else item.price)

        p = PlannedLine(
            item_id=int(item.id),
            sku=item.sku,
            name=item.name,
            quantity=qty,
            unit_price=unit_price,
        )
        planned.append(p)
        subtotal += p.amount

        running[p.item_id] -= qty
        decrements.append(
            PlannedDecrement(
                item_id=p.item_id,
                quantity=qty,
                expected_new_quantity=running[p.item_id],
                reorder_level=int(item.reorder_level),
            )
        )
        adjustments.append(
            PendingAdjustment(
                item_id=p.item_id,
                action=InventoryAction.REMOVE.value,
                quantity=qty,
                notes=NOTE_ORDER_REMOVE,
            )
        )

    return ReservationPlan(
        customer_id=int(customer_id),
        lines=tuple(planned),
        subtotal=to_money(subtotal),
        decrements=tuple(decrements),
        adjustments=tuple(adjustments),
    )
