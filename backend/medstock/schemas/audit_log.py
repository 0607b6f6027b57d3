"""Audit log schemas."""

from datetime import datetime
from typing import List, Optional

from medstock.models.audit_log import ActivityType
from medstock.schemas.pagination import APIModel, PageMeta


class AuditLogResponse(APIModel):
    id: int
    user_id: int
    activity_type: ActivityType
    item_id: Optional[int] = None
    item_code: Optional[str] = None
    details: str
    created_at: datetime


class AuditLogPage(PageMeta):
    logs: List[AuditLogResponse]
