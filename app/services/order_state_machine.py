# app/services/order_state_machine.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import OrderStatus, PaymentStatus
from app.models.order import Order
from app.models.order_status_event import OrderStatusEvent
from app.services import inventory_ledger
from app.services.errors import InvalidTransition, ValidationError
from app.services.order_repo import claim_status, require_order

log = logging.getLogger("stockdesk.orders")

TERMINAL: FrozenSet[str] = frozenset(
    {OrderStatus.DELIVERED.value, OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value}
)
# hard delete is refused for fulfilled orders only; a cancelled order may go
UNDELETABLE: FrozenSet[str] = frozenset({OrderStatus.DELIVERED.value, OrderStatus.COMPLETED.value})
SETTLING: FrozenSet[str] = UNDELETABLE

_RANK: Dict[str, int] = {
    OrderStatus.PENDING.value: 0,
    OrderStatus.PROCESSING.value: 1,
    OrderStatus.SHIPPED.value: 2,
    OrderStatus.DELIVERED.value: 3,
    OrderStatus.COMPLETED.value: 3,
}


def parse_status(value: Union[str, OrderStatus]) -> str:
    try:
        return OrderStatus(str(value).strip().upper()).value
    except ValueError:
        raise ValidationError("status", f"unknown order status {value!r}")


def can_transition(current: str, target: str) -> bool:
    """
    Forward-only by rank, skipping allowed; CANCELLED from any non-terminal
    status; nothing leaves a terminal status.
    """
    if current in TERMINAL:
        return False
    if target == OrderStatus.CANCELLED.value:
        return True
    return _RANK[target] > _RANK[current]


def _append_event(order: Order, *, status: str, notes: Optional[str], acting_user: Optional[str], now: datetime) -> None:
    order.status_history.append(
        OrderStatusEvent(
            status=status,
            notes=notes,
            user_id=acting_user,
            created_at=now,
        )
    )


async def _restore_stock(session: AsyncSession, order: Order, *, acting_user: Optional[str], now: datetime) -> None:
    # same lock order as create_order
    for line in sorted(order.items, key=lambda ln: (ln.item_id or 0, ln.id)):
        new_qty = await inventory_ledger.increment(
            session,
            item_id=line.item_id,
            quantity=line.quantity,
            user_id=acting_user,
            now=now,
        )
        if new_qty is None:
            log.warning("order %s: item %s gone, stock not restored", order.order_number, line.item_id)


async def _apply_cancel(
    session: AsyncSession,
    order: Order,
    *,
    notes: Optional[str],
    acting_user: Optional[str],
    now: datetime,
) -> None:
    await claim_status(session, order, new_status=OrderStatus.CANCELLED.value, now=now)
    await _restore_stock(session, order, acting_user=acting_user, now=now)
    if order.payment is not None:
        order.payment.status = PaymentStatus.CANCELLED.value
    _append_event(
        order,
        status=OrderStatus.CANCELLED.value,
        notes=notes or "Order cancelled",
        acting_user=acting_user,
        now=now,
    )
    await session.flush()


async def transition(
    session: AsyncSession,
    *,
    order_id: int,
    new_status: Union[str, OrderStatus],
    notes: Optional[str] = None,
    acting_user: Optional[str] = None,
    now: datetime,
) -> Order:
    """
    Apply one status change inside the caller's unit of work.

    - same status: returned untouched (no event, updated_at kept)
    - DELIVERED / COMPLETED settle the payment (PAID, paid_at=now)
    - CANCELLED runs the cancellation (stock restore + payment CANCELLED)
    """
    target = parse_status(new_status)
    order = await require_order(session, order_id, for_update=True)
    current = order.status

    if target == current:
        return order
    if not can_transition(current, target):
        raise InvalidTransition(current, target)

    if target == OrderStatus.CANCELLED.value:
        await _apply_cancel(session, order, notes=notes, acting_user=acting_user, now=now)
        return order

    await claim_status(session, order, new_status=target, now=now)
    if target in SETTLING and order.payment is not None:
        order.payment.status = PaymentStatus.PAID.value
        order.payment.paid_at = now
    _append_event(
        order,
        status=target,
        notes=notes or f"Status updated to {target}",
        acting_user=acting_user,
        now=now,
    )
    await session.flush()
    return order


async def cancel(
    session: AsyncSession,
    *,
    order_id: int,
    notes: Optional[str] = None,
    acting_user: Optional[str] = None,
    now: datetime,
) -> Order:
    """Soft cancel: stock returned, history kept."""
    order = await require_order(session, order_id, for_update=True)
    if order.status in TERMINAL:
        raise InvalidTransition(order.status, OrderStatus.CANCELLED.value, "order is already closed")
    await _apply_cancel(session, order, notes=notes, acting_user=acting_user, now=now)
    return order


async def hard_delete(
    session: AsyncSession,
    *,
    order_id: int,
    acting_user: Optional[str] = None,
    now: datetime,
) -> str:
    """
    Administrative removal of an order and its dependents; returns the
    order number. Stock is returned first unless the order was already
    cancelled (its stock went back then).
    """
    order = await require_order(session, order_id, for_update=True)
    if order.status in UNDELETABLE:
        raise InvalidTransition(order.status, "DELETED", "fulfilled orders cannot be deleted")

    if order.status != OrderStatus.CANCELLED.value:
        await claim_status(session, order, new_status=OrderStatus.CANCELLED.value, now=now)
        await _restore_stock(session, order, acting_user=acting_user, now=now)

    order_number = order.order_number
    await session.delete(order)
    await session.flush()
    return order_number
