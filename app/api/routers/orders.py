# app/api/routers/orders.py
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.api.deps import get_order_service, require_acting_user
from app.models.enums import OrderStatus
from app.schemas.common import MAX_INT
from app.schemas.orders import (
    OrderCancelIn,
    OrderCreateIn,
    OrderDeletedOut,
    OrderListOut,
    OrderOut,
    OrderStatusIn,
    ReservationOut,
    ReserveIn,
)
from app.services.order_service import OrderService
from app.services.stock_reservation import ReserveLine

router = APIRouter(tags=["orders"])

OrderId = Annotated[int, Path(ge=1, le=MAX_INT)]


def _lines(payload: ReserveIn) -> list[ReserveLine]:
    return [
        ReserveLine(item_id=ln.item_id, quantity=ln.quantity, unit_price_override=ln.unit_price)
        for ln in payload.lines
    ]


@router.post("/orders/reserve", response_model=ReservationOut)
async def reserve_preview(
    payload: ReserveIn,
    svc: OrderService = Depends(get_order_service),
):
    """Stock check + price preview; nothing is written."""
    plan = await svc.reserve_stock(customer_id=payload.customer_id, lines=_lines(payload))
    return ReservationOut.model_validate(plan)


@router.post("/orders", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateIn,
    svc: OrderService = Depends(get_order_service),
    acting_user: str = Depends(require_acting_user),
):
    order = await svc.create_order(
        customer_id=payload.customer_id,
        lines=_lines(payload),
        discount=payload.discount,
        tax=payload.tax,
        notes=payload.notes,
        payment_method=payload.payment_method.value if payload.payment_method else None,
        acting_user=acting_user,
    )
    return OrderOut.model_validate(order)


@router.get("/orders", response_model=OrderListOut)
async def list_orders(
    status_: Optional[OrderStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None, ge=1, le=MAX_INT),
    search: Optional[str] = Query(None, max_length=128),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: OrderService = Depends(get_order_service),
):
    rows, total = await svc.list_orders(
        status=status_.value if status_ else None,
        customer_id=customer_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return OrderListOut(
        orders=[OrderOut.model_validate(o) for o in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/orders/{order_id}", response_model=OrderOut)
async def get_order(order_id: OrderId, svc: OrderService = Depends(get_order_service)):
    return OrderOut.model_validate(await svc.get_order(order_id))


@router.patch("/orders/{order_id}", response_model=OrderOut)
async def update_order_status(
    order_id: OrderId,
    payload: OrderStatusIn,
    svc: OrderService = Depends(get_order_service),
    acting_user: str = Depends(require_acting_user),
):
    order = await svc.transition_status(
        order_id=order_id,
        new_status=payload.status.value,
        notes=payload.notes,
        acting_user=acting_user,
    )
    return OrderOut.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderOut)
async def cancel_order(
    order_id: OrderId,
    payload: Optional[OrderCancelIn] = Body(None),
    svc: OrderService = Depends(get_order_service),
    acting_user: str = Depends(require_acting_user),
):
    order = await svc.cancel_order(
        order_id=order_id,
        notes=payload.notes if payload else None,
        acting_user=acting_user,
    )
    return OrderOut.model_validate(order)


@router.delete("/orders/{order_id}", response_model=OrderDeletedOut)
async def delete_order(
    order_id: OrderId,
    svc: OrderService = Depends(get_order_service),
    acting_user: str = Depends(require_acting_user),
):
    """Administrative hard delete; stock of a live order is returned first."""
    order_number = await svc.delete_order(order_id=order_id, acting_user=acting_user)
    return OrderDeletedOut(order_number=order_number)
