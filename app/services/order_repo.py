# app/services/order_repo.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import MAX_INT
from app.models.customer import Customer
from app.models.order import Order
from app.services.errors import ConcurrencyConflict, NotFound
from app.services.order_utils import day_after, day_start


async def next_order_seq(session: AsyncSession) -> int:
    """
    max(order_seq) + 1.

    Not a uniqueness guarantee by itself: orders.order_seq / order_number are
    unique, a concurrent winner turns our insert into a ConcurrencyConflict
    and the unit of work is retried with a fresh value.
    """
    cur = (await session.execute(select(func.max(Order.order_seq)))).scalar_one_or_none()
    return int(cur or 0) + 1


async def get_order(session: AsyncSession, order_id: int, *, for_update: bool = False) -> Optional[Order]:
    if not 0 < int(order_id) <= MAX_INT:
        return None
    stmt = select(Order).where(Order.id == int(order_id))
    if for_update:
        stmt = stmt.with_for_update(of=Order)
    return (await session.execute(stmt)).scalars().first()


async def require_order(session: AsyncSession, order_id: int, *, for_update: bool = False) -> Order:
    order = await get_order(session, order_id, for_update=for_update)
    if order is None:
        raise NotFound("order", order_id)
    return order


async def claim_status(session: AsyncSession, order: Order, *, new_status: str, now: datetime) -> None:
    """
    Compare-and-set of orders.status: only applies if the row still has the
    status this unit of work read. Guards against double cancellation
    (stock restored twice) under concurrent requests.
    """
    res = await session.execute(
        update(Order)
        .where(Order.id == order.id)
        .where(Order.status == order.status)
        .values(status=new_status, updated_at=now)
        .returning(Order.id)
        .execution_options(synchronize_session="evaluate")
    )
    if res.scalar_one_or_none() is None:
        raise ConcurrencyConflict(f"order {order.id} status changed concurrently")


async def list_orders(
    session: AsyncSession,
    *,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 100,
    offset: int = 0,
) -> Tuple[List[Order], int]:
    """
    Order list, newest first.

    - search: order number or customer name / email (case-insensitive)
    - end_date is inclusive
    """
    conds = []
    if status:
        conds.append(Order.status == status)
    if customer_id is not None:
        conds.append(Order.customer_id == int(customer_id))
    if start_date is not None:
        conds.append(Order.created_at >= day_start(start_date))
    if end_date is not None:
        conds.append(Order.created_at < day_after(end_date))

    q_raw = (search or "").strip()
    if q_raw:
        q_like = f"%{q_raw.lower()}%"
        conds.append(
            or_(
                func.lower(Order.order_number).like(q_like),
                func.lower(Customer.name).like(q_like),
                func.lower(Customer.email).like(q_like),
            )
        )

    stmt = select(Order).join(Customer, Customer.id == Order.customer_id)
    count_stmt = select(func.count(Order.id)).select_from(Order).join(Customer, Customer.id == Order.customer_id)
    for c in conds:
        stmt = stmt.where(c)
        count_stmt = count_stmt.where(c)

    stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).offset(offset)
    rows = (await session.execute(stmt)).scalars().all()
    total = (await session.execute(count_stmt)).scalar_one()
    return list(rows), int(total)
