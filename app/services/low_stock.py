# app/services/low_stock.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from app.models.enums import NotificationType


class StockSnapshot(Protocol):
    id: int
    sku: str
    name: str
    quantity: int
    reorder_level: int


@dataclass(frozen=True)
class NotificationDescriptor:
    """A notification to be written by a NotificationSink (not yet persisted)."""

    type: str
    title: str
    message: str
    user_id: Optional[str]
    item_id: Optional[int] = None
    meta: Dict[str, Any] = field(default_factory=dict)


def check_low_stock(item: StockSnapshot, *, user_id: Optional[str] = None) -> Optional[NotificationDescriptor]:
    """
    Pure function of an item snapshot: a LOW_STOCK descriptor iff
    quantity <= reorder_level, else None.

    Duplicate suppression is up to the sink.
    """
    quantity = int(item.quantity)
    reorder_level = int(item.reorder_level)
    if quantity > reorder_level:
        return None

    return NotificationDescriptor(
        type=NotificationType.LOW_STOCK.value,
        title=f"Low Stock Alert: {item.name}",
        message=(
            f"The inventory for {item.name} ({item.sku}) is at or below the reorder level "
            f"({quantity} left, reorder level {reorder_level})."
        ),
        user_id=user_id,
        item_id=int(item.id),
        meta={
            "item_id": int(item.id),
            "sku": item.sku,
            "quantity": quantity,
            "reorder_level": reorder_level,
        },
    )
