# app/services/order_builder.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from app.core.config import get_settings
from app.models.enums import OrderStatus, PaymentMethod, PaymentStatus
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.order_status_event import OrderStatusEvent
from app.models.payment import Payment
from app.services.errors import ValidationError
from app.services.order_utils import format_order_number, to_money
from app.services.stock_reservation import ReservationPlan

NOTE_ORDER_CREATED = "Order created"


def compute_total(subtotal: Decimal, discount: Decimal, tax: Decimal) -> Decimal:
    """total = max(0, subtotal - discount) + tax"""
    return to_money(max(Decimal("0"), to_money(subtotal) - to_money(discount)) + to_money(tax))


def build_order(
    plan: ReservationPlan,
    *,
    order_seq: int,
    discount: Union[Decimal, int, str] = Decimal("0"),
    tax: Union[Decimal, int, str] = Decimal("0"),
    notes: Optional[str] = None,
    payment_method: Union[str, PaymentMethod] = PaymentMethod.CREDIT_CARD,
    acting_user: Optional[str] = None,
    now: datetime,
) -> Order:
    """
    Order aggregate from a reservation plan (not yet added to a session):

    - one OrderItem per planned line, price snapshot from the plan
    - exactly one Payment(PENDING, amount=total)
    - one OrderStatusEvent(PENDING, "Order created")
    """
    disc = to_money(discount)
    tx = to_money(tax)
    if disc < 0:
        raise ValidationError("discount", "must be >= 0")
    if tx < 0:
        raise ValidationError("tax", "must be >= 0")
    try:
        method = PaymentMethod(str(payment_method))
    except ValueError:
        raise ValidationError("payment_method", f"unsupported method {payment_method!r}")

    settings = get_settings()
    total = compute_total(plan.subtotal, disc, tx)

    order = Order(
        order_seq=int(order_seq),
        order_number=format_order_number(
            order_seq,
            prefix=settings.ORDER_NUMBER_PREFIX,
            width=settings.ORDER_NUMBER_WIDTH,
        ),
        customer_id=plan.customer_id,
        subtotal=plan.subtotal,
        discount=disc,
        tax=tx,
        total=total,
        status=OrderStatus.PENDING.value,
        notes=notes or None,
        created_at=now,
        updated_at=now,
    )
    order.items = [
        OrderItem(
            item_id=line.item_id,
            sku=line.sku,
            name=line.name,
            quantity=line.quantity,
            price=line.unit_price,
        )
        for line in plan.lines
    ]
    order.payment = Payment(
        method=method.value,
        status=PaymentStatus.PENDING.value,
        amount=total,
        transaction_id=None,
        paid_at=None,
    )
    order.status_history = [
        OrderStatusEvent(
            status=OrderStatus.PENDING.value,
            notes=NOTE_ORDER_CREATED,
            user_id=acting_user,
            created_at=now,
        )
    ]
    return order
