# app/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import get_session_factory
from app.services.inventory_service import InventoryService
from app.services.order_service import OrderService


def get_acting_user(x_user_id: Optional[str] = Header(default=None, max_length=64)) -> Optional[str]:
    """
    Acting user id as resolved by the auth front (X-User-Id); opaque here.
    Missing header means an anonymous / system call.
    """
    v = (x_user_id or "").strip()
    return v or None


def require_acting_user(acting_user: Optional[str] = Depends(get_acting_user)) -> str:
    """Mutations and inbox reads need a known actor: 401 without X-User-Id."""
    if not acting_user:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return acting_user


def get_order_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> OrderService:
    return OrderService(session_factory)


def get_inventory_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> InventoryService:
    return InventoryService(session_factory)
