# app/schemas/notifications.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.common import _Base


class NotificationOut(_Base):
    id: int
    type: str
    title: str
    message: str
    user_id: Optional[str] = None
    read: bool
    read_at: Optional[datetime] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class NotificationListOut(_Base):
    notifications: List[NotificationOut]
    total: int
    limit: int
    offset: int
