# app/schemas/orders.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, field_validator

from app.models.enums import OrderStatus, PaymentMethod
from app.schemas.common import MAX_INT, _Base, _In


# ===== request bodies =====
class OrderLineIn(_In):
    item_id: Annotated[int, Field(ge=1, le=MAX_INT)]
    quantity: Annotated[int, Field(ge=1, le=MAX_INT, description="must be >= 1")]
    unit_price: Annotated[Optional[Decimal], Field(ge=0, description="price override")] = None


class ReserveIn(_In):
    customer_id: Annotated[int, Field(ge=1, le=MAX_INT)]
    lines: List[OrderLineIn]

    @field_validator("lines")
    @classmethod
    def _lines_non_empty(cls, v: List[OrderLineIn]):
        if not v:
            raise ValueError("at least one line item is required")
        return v


class OrderCreateIn(ReserveIn):
    """
    POST /orders
    - total = max(0, subtotal - discount) + tax
    - payment_method defaults to DEFAULT_PAYMENT_METHOD
    """

    discount: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    tax: Annotated[Decimal, Field(ge=0)] = Decimal("0")
    notes: Annotated[Optional[str], Field(max_length=2000)] = None
    payment_method: Optional[PaymentMethod] = None


class OrderStatusIn(_In):
    status: OrderStatus
    notes: Annotated[Optional[str], Field(max_length=2000)] = None


class OrderCancelIn(_In):
    notes: Annotated[Optional[str], Field(max_length=2000)] = None


# ===== responses =====
class PlannedLineOut(_Base):
    item_id: int
    sku: str
    name: str
    quantity: int
    unit_price: Decimal
    amount: Decimal


class PlannedDecrementOut(_Base):
    item_id: int
    quantity: int
    expected_new_quantity: int


class ReservationOut(_Base):
    customer_id: int
    subtotal: Decimal
    lines: List[PlannedLineOut]
    decrements: List[PlannedDecrementOut]


class OrderItemOut(_Base):
    id: int
    item_id: int
    sku: str
    name: str
    quantity: int
    price: Decimal
    amount: Decimal


class PaymentOut(_Base):
    method: str
    status: str
    amount: Decimal
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class StatusEventOut(_Base):
    status: str
    notes: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime


class OrderOut(_Base):
    id: int
    order_number: str
    customer_id: int
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = Field(default_factory=list)
    payment: Optional[PaymentOut] = None
    status_history: List[StatusEventOut] = Field(default_factory=list)


class OrderListOut(_Base):
    orders: List[OrderOut]
    total: int
    limit: int
    offset: int


class OrderDeletedOut(_Base):
    ok: bool = True
    order_number: str
