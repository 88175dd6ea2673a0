# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# ============================================================
# settings are read once (lru_cache): point the app at a scratch
# database before anything imports app.main / app.db.session
# ============================================================
_BOOT_DIR = tempfile.mkdtemp(prefix="stockdesk-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_BOOT_DIR}/boot.db"
os.environ.pop("LOW_STOCK_NOTIFY_USER_ID", None)
os.environ.pop("LOW_STOCK_DEDUP", None)

from app.core.tx import TxManager  # noqa: E402
from app.db.base import Base, init_models  # noqa: E402
from app.db.session import get_session, get_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.services.inventory_service import InventoryService  # noqa: E402
from app.services.notification_sink import SqlNotificationSink  # noqa: E402
from app.services.order_service import OrderService  # noqa: E402

init_models()


class FixedClock:
    """Deterministic clock: every now() is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


# =========================================
# one SQLite file database per test (NullPool, no cross-loop reuse)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/stockdesk.db",
        poolclass=NullPool,
        future=True,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_on(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Plain session for assertions (read-mostly)."""
    async with session_factory() as sess:
        yield sess


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def tx(session_factory) -> TxManager:
    return TxManager(session_factory, retries=3, backoff_ms=0)


@pytest.fixture
def sink(session_factory, clock) -> SqlNotificationSink:
    return SqlNotificationSink(session_factory, clock=clock, dedup=False)


@pytest.fixture
def order_service(session_factory, clock, sink, tx) -> OrderService:
    return OrderService(session_factory, clock=clock, sink=sink, tx=tx)


@pytest.fixture
def inventory_service(session_factory, clock, sink, tx) -> InventoryService:
    return InventoryService(session_factory, clock=clock, sink=sink, tx=tx)


# =========================================
# FastAPI / httpx AsyncClient bound to the per-test database
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as sess:
            yield sess

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_session] = _session

    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
