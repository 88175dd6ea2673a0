# app/api/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_acting_user
from app.db.session import get_session
from app.schemas.notifications import NotificationListOut, NotificationOut
from app.services.notification_sink import list_notifications

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=NotificationListOut)
async def get_notifications(
    unread: bool = Query(False),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    acting_user: str = Depends(require_acting_user),
):
    """The acting user's inbox, newest first."""
    rows, total = await list_notifications(
        session,
        user_id=acting_user,
        unread_only=unread,
        limit=limit,
        offset=offset,
    )
    return NotificationListOut(
        notifications=[NotificationOut.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )
