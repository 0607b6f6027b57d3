"""Dashboard routes: headline counts, activity feed and stock panels."""

from fastapi import APIRouter, Query, Request

from medstock.core.config import settings
from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser
from medstock.db.session import DbSession
from medstock.schemas.dashboard import ActivityFeed, DashboardStats, ItemList
from medstock.schemas.inventory import InventoryItemPage
from medstock.services.audit_service import AuditLogRecorder
from medstock.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
@limiter.limit("60/minute")
def get_stats(request: Request, db: DbSession, current_user: CurrentUser):
    """Total, low-stock, recently added, out-of-stock and expiring-soon counts."""
    return DashboardService(db).stats()


@router.get("/activity", response_model=ActivityFeed)
@limiter.limit("60/minute")
def get_activity(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(5, ge=1, le=100),
):
    """Most recent audit entries, newest first."""
    return ActivityFeed.model_validate({"logs": AuditLogRecorder(db).recent(limit)}, from_attributes=True)


@router.get("/low-stock", response_model=InventoryItemPage)
@limiter.limit("60/minute")
def get_low_stock(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    items, total = DashboardService(db).low_stock_items(page=page, page_size=limit)
    return InventoryItemPage.create(items=items, total=total, page=page, limit=limit)


@router.get("/out-of-stock", response_model=InventoryItemPage)
@limiter.limit("60/minute")
def get_out_of_stock(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    items, total = DashboardService(db).out_of_stock_items(page=page, page_size=limit)
    return InventoryItemPage.create(items=items, total=total, page=page, limit=limit)


@router.get("/stock-alerts", response_model=ItemList)
@limiter.limit("60/minute")
def get_stock_alerts(request: Request, db: DbSession, current_user: CurrentUser):
    """Low and out-of-stock items together, emptiest first."""
    items = DashboardService(db).stock_alert_items()
    return ItemList.model_validate({"items": items, "total": len(items)}, from_attributes=True)
