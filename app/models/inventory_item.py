# app/models/inventory_item.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class InventoryItem(Base):
    """
    Stock item:

        id              INTEGER PRIMARY KEY
        sku             VARCHAR(64) UNIQUE NOT NULL
        name            VARCHAR(255) NOT NULL
        quantity        INTEGER NOT NULL DEFAULT 0   CHECK (quantity >= 0)
        reorder_level   INTEGER NOT NULL DEFAULT 0   CHECK (reorder_level >= 0)
        cost / price    NUMERIC(12,2) NOT NULL DEFAULT 0

    quantity is only written by the inventory ledger (conditional updates +
    one inventory_adjustments row per change).
    """

    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    sku: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True, index=True)
    location: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)

    quantity: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    reorder_level: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    cost: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    price: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    unit: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="each")

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)

    __table_args__ = (
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        sa.CheckConstraint("reorder_level >= 0", name="ck_inventory_items_reorder_nonneg"),
        sa.CheckConstraint("cost >= 0 AND price >= 0", name="ck_inventory_items_money_nonneg"),
    )

    @property
    def is_low_stock(self) -> bool:
        return int(self.quantity) <= int(self.reorder_level)

    def __repr__(self) -> str:
        return (
            f"<InventoryItem id={self.id} sku={self.sku!r} qty={self.quantity} "
            f"reorder={self.reorder_level}>"
        )
