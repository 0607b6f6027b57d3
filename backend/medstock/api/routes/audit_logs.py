"""Audit log routes (admin only)."""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Query, Request

from medstock.core.config import settings
from medstock.core.rate_limit import limiter
from medstock.core.rbac import RequireAdmin
from medstock.db.session import DbSession
from medstock.models.audit_log import ActivityType
from medstock.schemas.audit_log import AuditLogPage
from medstock.schemas.pagination import PageMeta
from medstock.services.audit_service import AuditLogRecorder

router = APIRouter()


@router.get("/", response_model=AuditLogPage)
@limiter.limit("60/minute")
def list_audit_logs(
    request: Request,
    db: DbSession,
    current_user: RequireAdmin,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    user_id: Optional[int] = Query(None, alias="userId"),
    item_id: Optional[int] = Query(None, alias="itemId"),
    activity_type: Optional[ActivityType] = Query(None, alias="activityType"),
    start_date: Optional[date | datetime] = Query(None, alias="startDate"),
    end_date: Optional[date | datetime] = Query(None, alias="endDate"),
):
    """Newest-first audit history. A date-only ``endDate`` includes that whole day."""
    logs, total = AuditLogRecorder(db).query(
        page=page,
        page_size=limit,
        user_id=user_id,
        item_id=item_id,
        activity_type=activity_type,
        start_date=start_date,
        end_date=end_date,
    )
    return AuditLogPage.model_validate(
        {"logs": logs, **PageMeta.values(page, limit, total)}, from_attributes=True
    )
