# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.low_stock import NotificationDescriptor


class Clock(Protocol):
    def now(self) -> datetime: ...


class CustomerLookup(Protocol):
    async def exists(self, session: AsyncSession, customer_id: int) -> bool: ...


class NotificationSink(Protocol):
    async def emit(self, descriptors: Sequence[NotificationDescriptor]) -> int: ...


class SystemClock:
    """UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
