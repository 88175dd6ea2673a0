# app/core/tx.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.metrics import TX_CONFLICTS, TX_LATENCY
from app.services.errors import ConcurrencyConflict, OrderFlowError, StorageFailure

log = logging.getLogger("stockdesk.tx")

T = TypeVar("T")

# unique_violation / serialization_failure / deadlock_detected / lock_not_available
_PG_UNIQUE = "23505"
_PG_RETRYABLE = {"40001", "40P01", "55P03"}

_LOCK_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock timeout",
)


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: DBAPIError) -> bool:
    if _sqlstate(exc) == _PG_UNIQUE:
        return True
    msg = str(getattr(exc, "orig", exc)).lower()
    return "unique" in msg or "duplicate key" in msg


def is_retryable_operational(exc: DBAPIError) -> bool:
    if _sqlstate(exc) in _PG_RETRYABLE:
        return True
    msg = str(getattr(exc, "orig", exc)).lower()
    return any(m in msg for m in _LOCK_MARKERS)


@asynccontextmanager
async def tx_commit(session: AsyncSession):
    """
    Commit transaction: plain begin/commit, rollback on any exception.
    """
    async with session.begin():
        yield


class TxManager:
    """
    Unit-of-work runner.

    - every attempt gets a fresh session and exactly one transaction
    - handlers never commit / rollback themselves
    - ConcurrencyConflict (lost conditional update, unique collision,
      lock / serialization failure) is retried a bounded number of times
    - other store errors become StorageFailure, business errors pass through
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        retries: Optional[int] = None,
        backoff_ms: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.session_factory = session_factory
        self.retries = settings.ORDER_CONFLICT_RETRIES if retries is None else int(retries)
        self.backoff_ms = settings.ORDER_CONFLICT_BACKOFF_MS if backoff_ms is None else int(backoff_ms)

    async def run(
        self,
        fn: Callable[..., Awaitable[T]],
        *,
        op: str,
        **kwargs: Any,
    ) -> T:
        attempt = 0
        with TX_LATENCY.labels(op=op).time():
            while True:
                attempt += 1
                try:
                    return await self._run_once(fn, **kwargs)
                except ConcurrencyConflict as e:
                    TX_CONFLICTS.labels(op=op).inc()
                    if attempt > self.retries:
                        log.warning("tx %s: conflict after %d attempts: %s", op, attempt, e.reason)
                        raise
                    log.info("tx %s: conflict on attempt %d (%s), retrying", op, attempt, e.reason)
                    if self.backoff_ms:
                        await asyncio.sleep(self.backoff_ms * attempt / 1000.0)

    async def _run_once(self, fn: Callable[..., Awaitable[T]], **kwargs: Any) -> T:
        async with self.session_factory() as session:
            try:
                async with tx_commit(session):
                    return await fn(session=session, **kwargs)
            except OrderFlowError:
                raise
            except IntegrityError as e:
                if is_unique_violation(e):
                    raise ConcurrencyConflict("unique constraint collision") from e
                log.exception("integrity failure: %s", e)
                raise StorageFailure() from e
            except OperationalError as e:
                if is_retryable_operational(e):
                    raise ConcurrencyConflict("store lock / serialization failure") from e
                log.exception("storage failure: %s", e)
                raise StorageFailure() from e
            except SQLAlchemyError as e:
                log.exception("storage failure: %s", e)
                raise StorageFailure() from e
