# app/models/inventory_adjustment.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class InventoryAdjustment(Base):
    """
    Inventory ledger (append-only).

    - action in CREATE / ADD / REMOVE, quantity is the positive delta
    - rows are never updated; they are deleted only together with their item
    """

    __tablename__ = "inventory_adjustments"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    item_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.CheckConstraint("quantity > 0", name="ck_inventory_adjustments_quantity_pos"),
        sa.Index("ix_inventory_adjustments_item_created", "item_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryAdjustment item={self.item_id} {self.action} "
            f"qty={self.quantity} user={self.user_id}>"
        )
