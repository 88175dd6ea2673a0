# app/services/notification_sink.py
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.metrics import LOW_STOCK_ALERTS, NOTIFY_FAILURES
from app.models.enums import NotificationType
from app.models.notification import Notification
from app.ports import Clock, NotificationSink, SystemClock
from app.services.low_stock import NotificationDescriptor, StockSnapshot, check_low_stock

log = logging.getLogger("stockdesk.notify")


class SqlNotificationSink:
    """
    Writes NotificationDescriptors into the notifications table.

    - always in its own transaction, never inside an order unit of work
    - dedup=True skips a LOW_STOCK descriptor when the same user already has
      an unread LOW_STOCK notification for the same item
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Optional[Clock] = None,
        dedup: Optional[bool] = None,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.dedup = get_settings().LOW_STOCK_DEDUP if dedup is None else bool(dedup)

    async def _has_unread(self, session: AsyncSession, d: NotificationDescriptor) -> bool:
        row = await session.execute(
            select(Notification.id)
            .where(Notification.type == d.type)
            .where(Notification.item_id == d.item_id)
            .where(Notification.user_id == d.user_id)
            .where(Notification.read.is_(False))
            .limit(1)
        )
        return row.scalar_one_or_none() is not None

    async def emit(self, descriptors: Sequence[NotificationDescriptor]) -> int:
        if not descriptors:
            return 0

        written = 0
        alerts = 0
        async with self.session_factory() as session:
            async with session.begin():
                for d in descriptors:
                    if self.dedup and d.item_id is not None and await self._has_unread(session, d):
                        log.debug("skip duplicate %s for item=%s user=%s", d.type, d.item_id, d.user_id)
                        continue
                    session.add(
                        Notification(
                            type=d.type,
                            title=d.title,
                            message=d.message,
                            user_id=d.user_id,
                            item_id=d.item_id,
                            read=False,
                            read_at=None,
                            meta=dict(d.meta),
                            created_at=self.clock.now(),
                        )
                    )
                    written += 1
                    if d.type == NotificationType.LOW_STOCK.value:
                        alerts += 1

        if alerts:
            LOW_STOCK_ALERTS.inc(alerts)
        return written


async def emit_best_effort(sink: NotificationSink, descriptors: Sequence[NotificationDescriptor]) -> int:
    """
    Post-commit emission: errors are logged and dropped, the parent
    operation has already committed.
    """
    if not descriptors:
        return 0
    try:
        return await sink.emit(descriptors)
    except Exception:
        NOTIFY_FAILURES.inc()
        log.exception("notification emission failed (%d dropped)", len(descriptors))
        return 0


async def list_notifications(
    session: AsyncSession,
    *,
    user_id: str,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Notification], int]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    count_stmt = select(func.count(Notification.id)).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
        count_stmt = count_stmt.where(Notification.read.is_(False))

    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).offset(offset)
    rows = (await session.execute(stmt)).scalars().all()
    total = (await session.execute(count_stmt)).scalar_one()
    return list(rows), int(total)


def low_stock_alerts(items: Sequence[StockSnapshot], *, acting_user: Optional[str]) -> List[NotificationDescriptor]:
    """
    LOW_STOCK descriptors for the items at or below their reorder level,
    addressed to LOW_STOCK_NOTIFY_USER_ID or else the acting user.

    Without a recipient nothing is returned: an alert with no user_id is
    never listed by any inbox.
    """
    target = get_settings().LOW_STOCK_NOTIFY_USER_ID or acting_user
    out = [d for d in (check_low_stock(item, user_id=target) for item in items) if d is not None]
    if out and not target:
        log.warning(
            "low stock on item(s) %s not notified: no acting user and LOW_STOCK_NOTIFY_USER_ID unset",
            ",".join(str(d.item_id) for d in out),
        )
        return []
    return out
