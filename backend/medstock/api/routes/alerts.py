"""Expiration alert routes."""

from fastapi import APIRouter, Request

from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser
from medstock.db.session import DbSession
from medstock.schemas.dashboard import ItemList
from medstock.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/soon-to-expire", response_model=ItemList)
@limiter.limit("60/minute")
def soon_to_expire(request: Request, db: DbSession, current_user: CurrentUser):
    """Items expiring after today and within the soon window, soonest first."""
    items = DashboardService(db).soon_to_expire_items()
    return ItemList.model_validate({"items": items, "total": len(items)}, from_attributes=True)


@router.get("/critical-expirations", response_model=ItemList)
@limiter.limit("60/minute")
def critical_expirations(request: Request, db: DbSession, current_user: CurrentUser):
    items = DashboardService(db).critical_expiration_items()
    return ItemList.model_validate({"items": items, "total": len(items)}, from_attributes=True)
