# app/schemas/inventory.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field

from app.models.enums import InventoryAction
from app.schemas.common import MAX_INT, _Base, _In


class ItemCreateIn(_In):
    sku: Annotated[str, Field(min_length=1, max_length=64)]
    name: Annotated[str, Field(min_length=1, max_length=255)]
    description: Optional[str] = None
    category: Annotated[Optional[str], Field(max_length=64)] = None
    location: Annotated[Optional[str], Field(max_length=64)] = None
    quantity: Annotated[int, Field(ge=0, le=MAX_INT)] = 0
    reorder_level: Annotated[int, Field(ge=0, le=MAX_INT)] = 0
    cost: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    price: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    unit: Annotated[Optional[str], Field(max_length=16)] = None


class ItemUpdateIn(_In):
    """PATCH: only the fields that are sent are applied; quantity is not among them."""

    sku: Annotated[Optional[str], Field(min_length=1, max_length=64)] = None
    name: Annotated[Optional[str], Field(min_length=1, max_length=255)] = None
    description: Optional[str] = None
    category: Annotated[Optional[str], Field(max_length=64)] = None
    location: Annotated[Optional[str], Field(max_length=64)] = None
    reorder_level: Annotated[Optional[int], Field(ge=0, le=MAX_INT)] = None
    cost: Annotated[Optional[Decimal], Field(ge=0)] = None
    price: Annotated[Optional[Decimal], Field(ge=0)] = None
    unit: Annotated[Optional[str], Field(max_length=16)] = None


class ItemAdjustIn(_In):
    quantity: Annotated[int, Field(ge=0, le=MAX_INT, description="new absolute quantity")]
    notes: Annotated[Optional[str], Field(max_length=2000)] = None


class ItemOut(_Base):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    quantity: int
    reorder_level: int
    cost: Decimal
    price: Decimal
    unit: str
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime


class ItemListOut(_Base):
    items: List[ItemOut]
    total: int
    limit: int
    offset: int


class AdjustmentOut(_Base):
    id: int
    item_id: int
    action: InventoryAction
    quantity: int
    notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime


class HistoryOut(_Base):
    history: List[AdjustmentOut]
    total: int
    limit: int
    offset: int
