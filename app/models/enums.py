# app/models/enums.py
from __future__ import annotations

from enum import StrEnum


class InventoryAction(StrEnum):
    """
    Ledger actions (inventory_adjustments.action), quantity is always positive:

    - CREATE   initial stock recorded when an item is created
    - ADD      stock increase (manual restock, order cancellation)
    - REMOVE   stock decrease (order placement, manual correction)
    """

    CREATE = "CREATE"
    ADD = "ADD"
    REMOVE = "REMOVE"


class OrderStatus(StrEnum):
    """
    PENDING -> PROCESSING -> SHIPPED -> DELIVERED

    - COMPLETED is a terminal alias of DELIVERED
    - CANCELLED is reachable from any non-terminal status
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(StrEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(StrEnum):
    CREDIT_CARD = "CREDIT_CARD"
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"


class NotificationType(StrEnum):
    LOW_STOCK = "LOW_STOCK"


__all__ = [
    "InventoryAction",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "NotificationType",
]
