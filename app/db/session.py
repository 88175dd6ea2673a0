# app/db/session.py
# async engine + session factory + FastAPI dependency
from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings

log = logging.getLogger("stockdesk.db")


# ---- DSN normalization: async drivers only (psycopg3 / aiosqlite) ----
def normalize_async_dsn(url: str) -> str:
    url = (url or "").strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite:///") - 1 :]
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def normalize_sync_dsn(url: str) -> str:
    """Sync flavour of the same DSN (alembic)."""
    url = normalize_async_dsn(url)
    if url.startswith("sqlite+aiosqlite://"):
        return "sqlite://" + url[len("sqlite+aiosqlite://") :]
    return url


def create_engine_for(url: str, *, echo: bool = False) -> AsyncEngine:
    u = make_url(url)
    kwargs: dict[str, Any] = {"echo": echo}
    if u.get_backend_name().startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: results of a unit of work stay readable after commit
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


_settings = get_settings()
ASYNC_URL = normalize_async_dsn(_settings.DATABASE_URL)

log.info("[DB] Using DSN (async): %s", make_url(ASYNC_URL).render_as_string(hide_password=True))

async_engine: AsyncEngine = create_engine_for(ASYNC_URL, echo=_settings.SQL_ECHO)
AsyncSessionLocal: async_sessionmaker[AsyncSession] = make_session_factory(async_engine)


# ---- FastAPI dependencies ----
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def close_engines() -> None:
    await async_engine.dispose()
