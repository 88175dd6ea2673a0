# app/services/errors.py
from __future__ import annotations

from typing import Any, Dict, List


class OrderFlowError(Exception):
    """
    Base of the order/inventory error taxonomy.

    - code:        stable machine-readable error code
    - http_status: status the HTTP layer maps this error to
    - message:     user-facing text
    """

    code = "ORDER_FLOW_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> List[Dict[str, Any]]:
        return []


class NotFound(OrderFlowError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity_kind: str, entity_id: Any):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        super().__init__(f"{entity_kind} {entity_id} not found")

    def details(self) -> List[Dict[str, Any]]:
        return [{"type": "not_found", "entity": self.entity_kind, "id": self.entity_id}]


class ValidationError(OrderFlowError):
    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def details(self) -> List[Dict[str, Any]]:
        return [{"type": "validation", "path": self.field, "reason": self.reason}]


class InsufficientStock(OrderFlowError):
    code = "INSUFFICIENT_STOCK"
    http_status = 400

    def __init__(self, item_id: int, available: int, requested: int):
        self.item_id = int(item_id)
        self.available = int(available)
        self.requested = int(requested)
        super().__init__(
            f"insufficient stock for item={self.item_id}: "
            f"requested {self.requested}, available {self.available}"
        )

    def details(self) -> List[Dict[str, Any]]:
        return [
            {
                "type": "shortage",
                "item_id": self.item_id,
                "required_qty": self.requested,
                "available_qty": self.available,
                "short_qty": self.requested - self.available,
            }
        ]


class InvalidTransition(OrderFlowError):
    code = "INVALID_TRANSITION"
    http_status = 400

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        msg = f"cannot move order from {self.from_status} to {self.to_status}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)

    def details(self) -> List[Dict[str, Any]]:
        return [{"type": "state", "from": self.from_status, "to": self.to_status}]


class ConcurrencyConflict(OrderFlowError):
    """Lost a race at the store; the whole operation may be retried."""

    code = "CONCURRENCY_CONFLICT"
    http_status = 409
    retryable = True

    def __init__(self, reason: str = "concurrent update, please try again"):
        self.reason = reason
        super().__init__(reason)


class StorageFailure(OrderFlowError):
    """Opaque failure of the transactional store; never carries driver internals."""

    code = "STORAGE_FAILURE"
    http_status = 500

    def __init__(self, reason: str = "storage failure"):
        self.reason = reason
        super().__init__(reason)
