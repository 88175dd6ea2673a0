# tests/unit/test_low_stock.py
from __future__ import annotations

from types import SimpleNamespace

from app.models.enums import NotificationType
from app.services.low_stock import check_low_stock


def _item(quantity: int, reorder_level: int):
    return SimpleNamespace(id=7, sku="SKU-1", name="Widget", quantity=quantity, reorder_level=reorder_level)


def test_at_reorder_level_is_low():
    d = check_low_stock(_item(5, 5), user_id="u-1")
    assert d is not None
    assert d.type == NotificationType.LOW_STOCK.value
    assert d.title == "Low Stock Alert: Widget"
    assert "Widget (SKU-1)" in d.message
    assert d.user_id == "u-1"
    assert d.item_id == 7
    assert d.meta == {"item_id": 7, "sku": "SKU-1", "quantity": 5, "reorder_level": 5}


def test_above_reorder_level_is_not_low():
    assert check_low_stock(_item(6, 5)) is None


def test_zero_stock_zero_reorder_is_low():
    assert check_low_stock(_item(0, 0)) is not None
