# app/services/order_utils.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

UTC = timezone.utc
CENT = Decimal("0.01")


def to_money(x: Decimal | int | float | str | None, default: str = "0") -> Decimal:
    """
    Any amount -> Decimal quantized to cents (floats go through str to avoid
    binary noise).
    """
    if x is None:
        return Decimal(default).quantize(CENT)
    try:
        return Decimal(str(x)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal(default).quantize(CENT)


def format_order_number(seq: int, *, prefix: str = "ORD", width: int = 5) -> str:
    """ORD-00001; wider numbers are kept as-is."""
    return f"{prefix}-{int(seq):0{int(width)}d}"


def day_start(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=UTC)


def day_after(d: date) -> datetime:
    """Exclusive upper bound for an inclusive end date."""
    return day_start(d) + timedelta(days=1)
