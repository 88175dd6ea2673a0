# app/models/order_status_event.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.order import Order


class OrderStatusEvent(Base):
    """Order status history (append-only; the newest row matches orders.status)."""

    __tablename__ = "order_status_events"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="status_history")

    def __repr__(self) -> str:
        return f"<OrderStatusEvent order_id={self.order_id} status={self.status} user={self.user_id}>"
