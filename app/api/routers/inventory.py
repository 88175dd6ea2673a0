# app/api/routers/inventory.py
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from app.api.deps import get_inventory_service, require_acting_user
from app.schemas.common import MAX_INT
from app.schemas.inventory import (
    AdjustmentOut,
    HistoryOut,
    ItemAdjustIn,
    ItemCreateIn,
    ItemListOut,
    ItemOut,
    ItemUpdateIn,
)
from app.services.inventory_service import InventoryService

router = APIRouter(tags=["inventory"])

ItemId = Annotated[int, Path(ge=1, le=MAX_INT)]


@router.get("/inventory", response_model=ItemListOut)
async def list_items(
    search: Optional[str] = Query(None, max_length=128),
    category: Optional[str] = Query(None, max_length=64),
    low_stock: bool = Query(False, alias="lowStock"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: InventoryService = Depends(get_inventory_service),
):
    rows, total = await svc.list_items(
        search=search,
        category=category,
        low_stock=low_stock,
        limit=limit,
        offset=offset,
    )
    return ItemListOut(items=[ItemOut.model_validate(r) for r in rows], total=total, limit=limit, offset=offset)


@router.post("/inventory", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreateIn,
    svc: InventoryService = Depends(get_inventory_service),
    acting_user: str = Depends(require_acting_user),
):
    item = await svc.create_item(**payload.model_dump(), acting_user=acting_user)
    return ItemOut.model_validate(item)


@router.get("/inventory/{item_id}", response_model=ItemOut)
async def get_item(item_id: ItemId, svc: InventoryService = Depends(get_inventory_service)):
    return ItemOut.model_validate(await svc.get_item(item_id))


@router.patch(
    "/inventory/{item_id}",
    response_model=ItemOut,
    dependencies=[Depends(require_acting_user)],
)
async def update_item(
    item_id: ItemId,
    payload: ItemUpdateIn,
    svc: InventoryService = Depends(get_inventory_service),
):
    item = await svc.update_item(item_id=item_id, fields=payload.model_dump(exclude_unset=True))
    return ItemOut.model_validate(item)


@router.post("/inventory/{item_id}/adjust", response_model=ItemOut)
async def adjust_item(
    item_id: ItemId,
    payload: ItemAdjustIn,
    svc: InventoryService = Depends(get_inventory_service),
    acting_user: str = Depends(require_acting_user),
):
    item = await svc.adjust_quantity(
        item_id=item_id,
        new_quantity=payload.quantity,
        notes=payload.notes,
        acting_user=acting_user,
    )
    return ItemOut.model_validate(item)


@router.delete("/inventory/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: ItemId,
    svc: InventoryService = Depends(get_inventory_service),
    acting_user: str = Depends(require_acting_user),
):
    await svc.delete_item(item_id=item_id, acting_user=acting_user)


@router.get("/inventory/{item_id}/history", response_model=HistoryOut)
async def item_history(
    item_id: ItemId,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    svc: InventoryService = Depends(get_inventory_service),
):
    rows, total = await svc.history(item_id=item_id, limit=limit, offset=offset)
    return HistoryOut(history=[AdjustmentOut.model_validate(r) for r in rows], total=total, limit=limit, offset=offset)
