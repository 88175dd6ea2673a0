# app/models/__init__.py
"""
ORM model exports.
"""

from importlib import import_module


def _export(module_name: str, class_name: str) -> None:
    module = import_module(module_name)
    globals()[class_name] = getattr(module, class_name)


MODEL_SPECS = [
    # -------- customers --------
    ("app.models.customer", "Customer"),
    # -------- inventory + ledger --------
    ("app.models.inventory_item", "InventoryItem"),
    ("app.models.inventory_adjustment", "InventoryAdjustment"),
    # -------- orders --------
    ("app.models.order", "Order"),
    ("app.models.order_item", "OrderItem"),
    ("app.models.payment", "Payment"),
    ("app.models.order_status_event", "OrderStatusEvent"),
    # -------- notifications --------
    ("app.models.notification", "Notification"),
]

for _module, _name in MODEL_SPECS:
    _export(_module, _name)

__all__ = [name for _, name in MODEL_SPECS]
