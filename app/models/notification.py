# app/models/notification.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

# jsonb on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JsonDoc = sa.JSON().with_variant(JSONB(), "postgresql")


class Notification(Base):
    """
    User notification (LOW_STOCK, ...).

    meta for LOW_STOCK: {item_id, sku, quantity, reorder_level}
    """

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    type: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True, index=True)

    # denormalized from meta so item deletion / dedup can filter without JSON paths
    item_id: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True, index=True)

    read: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    meta: Mapped[Dict[str, Any]] = mapped_column(JsonDoc, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (sa.Index("ix_notifications_user_read", "user_id", "read"),)

    def __repr__(self) -> str:
        return f"<Notification id={self.id} {self.type} user={self.user_id} read={self.read}>"
