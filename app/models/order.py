# app/models/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.order_item import OrderItem
    from app.models.order_status_event import OrderStatusEvent
    from app.models.payment import Payment


class Order(Base):
    """
    Customer order header.

    - order_seq is the monotonic business sequence; order_number (ORD-00001)
      is derived from it. Both are unique, a collision means a concurrent
      creation won the number and the unit of work is retried.
    - total = max(0, subtotal - discount) + tax
    - dependents (lines / payment / status history) are loaded eagerly with
      selectin so detached instances stay readable after commit.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    order_seq: Mapped[int] = mapped_column(sa.Integer, nullable=False, unique=True)
    order_number: Mapped[str] = mapped_column(sa.String(32), nullable=False, unique=True, index=True)

    customer_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    subtotal: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)

    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderItem.id",
    )
    payment: Mapped[Optional["Payment"]] = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
        lazy="selectin",
    )
    status_history: Mapped[List["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="OrderStatusEvent.id",
    )

    __table_args__ = (
        sa.CheckConstraint(
            "subtotal >= 0 AND discount >= 0 AND tax >= 0 AND total >= 0",
            name="ck_orders_money_nonneg",
        ),
        sa.Index("ix_orders_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} no={self.order_number!r} status={self.status} total={self.total}>"
