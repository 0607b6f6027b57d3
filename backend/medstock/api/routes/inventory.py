"""Inventory item routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from medstock.core.config import settings
from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser
from medstock.core.responses import commit_mutation
from medstock.db.session import DbSession
from medstock.models.audit_log import ActivityType
from medstock.models.inventory_item import ItemStatus
from medstock.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemPage,
    InventoryItemResponse,
    InventoryItemUpdate,
    StockAdjustmentRequest,
)
from medstock.services.audit_service import (
    AuditLogRecorder,
    describe_stock_change,
    stock_activity_type,
)
from medstock.services.inventory_repository import InventoryItemRepository

logger = logging.getLogger(__name__)

router = APIRouter()

TRUTHY = {"true", "1", "yes", "soon"}


@router.get("/", response_model=InventoryItemPage)
@limiter.limit("60/minute")
def list_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status_filter: Optional[ItemStatus] = Query(None, alias="status"),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    search: Optional[str] = Query(None, max_length=100),
    expiring: Optional[str] = Query(None),
):
    """List inventory items with AND-composed filters.

    ``expiring=true`` restricts to items expiring within the soon window.
    """
    items, total = InventoryItemRepository(db).list(
        page=page,
        page_size=limit,
        status=status_filter,
        department_id=department_id,
        category_id=category_id,
        search=search,
        expiring=bool(expiring) and expiring.lower() in TRUTHY,
    )
    return InventoryItemPage.create(items=items, total=total, page=page, limit=limit)


@router.get("/{item_id}", response_model=InventoryItemResponse)
@limiter.limit("60/minute")
def get_item(request: Request, item_id: int, db: DbSession, current_user: CurrentUser):
    """Get an inventory item by ID."""
    item = InventoryItemRepository(db).get_by_id(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


@router.post("/", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_item(
    request: Request,
    response: Response,
    payload: InventoryItemCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create an inventory item. Status is derived from stock and threshold."""
    item = InventoryItemRepository(db).create(payload.model_dump())
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.CREATED,
        details=f"Created new item: {item.name}",
        item_id=item.id,
        item_code=item.item_id,
    )
    commit_mutation(db, response, entry)
    return item


@router.put("/{item_id}", response_model=InventoryItemResponse)
@limiter.limit("30/minute")
def update_item(
    request: Request,
    response: Response,
    item_id: int,
    payload: InventoryItemUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Partially update an inventory item. An empty body only bumps ``updatedAt``."""
    changes = payload.model_dump(exclude_unset=True)
    item = InventoryItemRepository(db).update(item_id, changes)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.UPDATED,
        details=f"Updated item: {item.name}",
        item_id=item.id,
        item_code=item.item_id,
    )
    commit_mutation(db, response, entry)
    return item


@router.post("/{item_id}/stock", response_model=InventoryItemResponse)
@limiter.limit("30/minute")
def adjust_stock(
    request: Request,
    response: Response,
    item_id: int,
    payload: StockAdjustmentRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Add (positive quantity) or remove (negative quantity) stock.

    A zero quantity changes nothing and writes no audit entry.
    """
    item = InventoryItemRepository(db).adjust_stock(item_id, payload.quantity)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    if payload.quantity == 0:
        return item

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=stock_activity_type(payload.quantity),
        details=describe_stock_change(item, payload.quantity),
        item_id=item.id,
        item_code=item.item_id,
    )
    commit_mutation(db, response, entry)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_item(request: Request, item_id: int, db: DbSession, current_user: CurrentUser):
    """Delete an inventory item. Its audit history is kept."""
    repo = InventoryItemRepository(db)
    item = repo.get_by_id(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    name, code = item.name, item.item_id

    repo.delete(item_id)
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.DELETED,
        details=f"Deleted item: {name}",
        item_code=code,
    )
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    commit_mutation(db, response, entry)
    return response
