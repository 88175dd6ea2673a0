# app/models/order_item.py
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.order import Order


class OrderItem(Base):
    """
    Order line. price / sku / name are snapshots taken when the order was
    placed; later edits of the inventory item never touch them.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    order_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    sku: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_order_items_quantity_pos"),
        sa.CheckConstraint("price >= 0", name="ck_order_items_price_nonneg"),
    )

    @property
    def amount(self) -> Decimal:
        return Decimal(self.price) * int(self.quantity)

    def __repr__(self) -> str:
        return (
            f"<OrderItem id={self.id} order_id={self.order_id} "
            f"item_id={self.item_id} qty={self.quantity} price={self.price}>"
        )
