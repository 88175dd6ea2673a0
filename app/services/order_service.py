# app/services/order_service.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.tx import TxManager
from app.metrics import ORDER_TRANSITIONS, ORDERS_CREATED
from app.models.enums import OrderStatus
from app.models.inventory_item import InventoryItem
from app.models.order import Order
from app.ports import Clock, CustomerLookup, NotificationSink, SystemClock
from app.services import inventory_ledger, order_repo, order_state_machine
from app.services.customer_lookup import SqlCustomerLookup
from app.services.errors import NotFound
from app.services.notification_sink import SqlNotificationSink, emit_best_effort, low_stock_alerts
from app.services.order_builder import build_order
from app.services.stock_reservation import ReservationPlan, ReserveLine, reserve

log = logging.getLogger("stockdesk.orders")


class OrderService:
    """
    Order use cases, one TxManager unit of work each.

    Notifications are emitted only after the unit of work committed, in a
    separate best-effort transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Optional[Clock] = None,
        customers: Optional[CustomerLookup] = None,
        sink: Optional[NotificationSink] = None,
        tx: Optional[TxManager] = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.customers = customers or SqlCustomerLookup()
        self.sink = sink or SqlNotificationSink(session_factory, clock=self.clock)
        self.tx = tx or TxManager(session_factory)

    # ---------------- reservation preview ----------------

    async def reserve_stock(self, *, customer_id: int, lines: Sequence[ReserveLine]) -> ReservationPlan:
        async def _uow(session: AsyncSession) -> ReservationPlan:
            return await reserve(session, customer_id=customer_id, lines=lines, customers=self.customers)

        return await self.tx.run(_uow, op="reserve")

    # ---------------- create ----------------

    async def create_order(
        self,
        *,
        customer_id: int,
        lines: Sequence[ReserveLine],
        discount: Decimal = Decimal("0"),
        tax: Decimal = Decimal("0"),
        notes: Optional[str] = None,
        payment_method: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> Order:
        method = payment_method or get_settings().DEFAULT_PAYMENT_METHOD

        async def _uow(session: AsyncSession) -> Tuple[Order, List[InventoryItem]]:
            now = self.clock.now()
            plan = await reserve(session, customer_id=customer_id, lines=lines, customers=self.customers)

            seq = await order_repo.next_order_seq(session)
            order = build_order(
                plan,
                order_seq=seq,
                discount=discount,
                tax=tax,
                notes=notes,
                payment_method=method,
                acting_user=acting_user,
                now=now,
            )
            session.add(order)
            await session.flush()

            # fixed lock order across concurrent orders: by item, then line
            for d in sorted(plan.decrements, key=lambda d: d.item_id):
                await inventory_ledger.decrement(
                    session,
                    item_id=d.item_id,
                    quantity=d.quantity,
                    user_id=acting_user,
                    now=now,
                )

            touched = await inventory_ledger.load_items(session, plan.item_ids)
            return order, touched

        order, touched = await self.tx.run(_uow, op="create_order")

        ORDERS_CREATED.inc()
        log.info(
            "order created: %s customer=%s lines=%d total=%s user=%s",
            order.order_number,
            order.customer_id,
            len(order.items),
            order.total,
            acting_user,
        )

        await self._notify_low_stock(touched, acting_user=acting_user)
        return order

    async def _notify_low_stock(self, items: Sequence[InventoryItem], *, acting_user: Optional[str]) -> int:
        return await emit_best_effort(self.sink, low_stock_alerts(items, acting_user=acting_user))

    # ---------------- status ----------------

    async def transition_status(
        self,
        *,
        order_id: int,
        new_status: str,
        notes: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> Order:
        async def _uow(session: AsyncSession) -> Tuple[Order, str]:
            order = await order_repo.require_order(session, order_id)
            before = order.status
            order = await order_state_machine.transition(
                session,
                order_id=order_id,
                new_status=new_status,
                notes=notes,
                acting_user=acting_user,
                now=self.clock.now(),
            )
            return order, before

        order, before = await self.tx.run(_uow, op="transition")
        if order.status != before:
            ORDER_TRANSITIONS.labels(to=order.status).inc()
            log.info("order %s: %s -> %s by %s", order.order_number, before, order.status, acting_user)
        return order

    async def cancel_order(
        self,
        *,
        order_id: int,
        notes: Optional[str] = None,
        acting_user: Optional[str] = None,
    ) -> Order:
        async def _uow(session: AsyncSession) -> Order:
            return await order_state_machine.cancel(
                session,
                order_id=order_id,
                notes=notes,
                acting_user=acting_user,
                now=self.clock.now(),
            )

        order = await self.tx.run(_uow, op="cancel")
        ORDER_TRANSITIONS.labels(to=OrderStatus.CANCELLED.value).inc()
        log.info("order %s cancelled by %s, stock returned", order.order_number, acting_user)
        return order

    async def delete_order(self, *, order_id: int, acting_user: Optional[str] = None) -> str:
        async def _uow(session: AsyncSession) -> str:
            return await order_state_machine.hard_delete(
                session,
                order_id=order_id,
                acting_user=acting_user,
                now=self.clock.now(),
            )

        order_number = await self.tx.run(_uow, op="delete")
        log.warning("order %s deleted by %s", order_number, acting_user)
        return order_number

    # ---------------- queries ----------------

    async def get_order(self, order_id: int) -> Order:
        async with self.session_factory() as session:
            order = await order_repo.get_order(session, order_id)
            if order is None:
                raise NotFound("order", order_id)
            return order

    async def list_orders(
        self,
        *,
        status: Optional[str] = None,
        customer_id: Optional[int] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[Order], int]:
        if status:
            status = order_state_machine.parse_status(status)
        async with self.session_factory() as session:
            return await order_repo.list_orders(
                session,
                status=status,
                customer_id=customer_id,
                search=search,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
                offset=offset,
            )

