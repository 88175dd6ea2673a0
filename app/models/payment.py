# app/models/payment.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.order import Order


class Payment(Base):
    """
    Exactly one payment per order.

    amount is written once at order creation (= order.total); later status
    changes only touch status / paid_at.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    method: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(sa.String(128), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="payment")

    __table_args__ = (sa.CheckConstraint("amount >= 0", name="ck_payments_amount_nonneg"),)

    def __repr__(self) -> str:
        return f"<Payment order_id={self.order_id} {self.method} {self.status} amount={self.amount}>"
