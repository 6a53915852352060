# clinic/api/v1/endpoints/inventory_items.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.models.inventory import InventoryCategory
from clinic.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryTransactionCreate,
    InventoryTransactionRead,
)
from clinic.services.inventory_service import to_response

router = APIRouter()


@router.get("", response_model=list[InventoryItemResponse], tags=["inventory-items"])
def list_inventory_items(
    search: Optional[str] = Query(
        None, description="Search by name, category or supplier (case-insensitive)"
    ),
    category: Optional[InventoryCategory] = Query(
        None, description="Filter by category (medication, supply or equipment)"
    ),
    low_stock_only: bool = Query(False, description="Only items at or below their reorder level"),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[InventoryItemResponse]:
    """
    List inventory items sorted by name.
    """
    items = ctx.ledger.search_items(search, category, low_stock_only=low_stock_only)
    return [to_response(item) for item in items]


@router.get("/low-stock", response_model=list[InventoryItemResponse], tags=["inventory-items"])
def list_low_stock_items(
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[InventoryItemResponse]:
    return [to_response(item) for item in ctx.ledger.low_stock_items()]


@router.post(
    "",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["inventory-items"],
)
def create_inventory_item(
    payload: InventoryItemCreate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> InventoryItemResponse:
    """
    Create an inventory item. Opening stock is recorded as the first
    ledger entry.
    """
    item = ctx.ledger.create_item(payload, created_by=ctx.user_id)
    return to_response(item)


@router.get("/{item_id}", response_model=InventoryItemResponse, tags=["inventory-items"])
def get_inventory_item(
    item_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> InventoryItemResponse:
    return to_response(ctx.state.get_item(item_id))


@router.patch("/{item_id}", response_model=InventoryItemResponse, tags=["inventory-items"])
def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> InventoryItemResponse:
    """
    Partial update. Stock levels only move through transactions.
    """
    item = ctx.ledger.update_item(item_id, payload)
    return to_response(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["inventory-items"])
def delete_inventory_item(
    item_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> Response:
    """
    Delete an item and its ledger. Past treatments keep their snapshot lines.
    """
    ctx.ledger.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{item_id}/transactions",
    response_model=list[InventoryTransactionRead],
    tags=["inventory-items"],
)
def list_item_transactions(
    item_id: UUID,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> list[InventoryTransactionRead]:
    """
    Stock history of one item, newest first.
    """
    return ctx.ledger.get_history(item_id)


@router.post(
    "/{item_id}/transactions",
    response_model=InventoryTransactionRead,
    status_code=status.HTTP_201_CREATED,
    tags=["inventory-items"],
)
def record_item_transaction(
    item_id: UUID,
    payload: InventoryTransactionCreate,
    ctx: ClinicContext = Depends(get_clinic_context),
) -> InventoryTransactionRead:
    """
    Record an addition, deduction or adjustment.
    """
    return ctx.ledger.record_transaction(item_id, payload, created_by=ctx.user_id)
