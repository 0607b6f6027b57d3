"""Audit logging service.

Appends entries to the ``audit_logs`` ledger and answers history queries.

Routes call ``AuditLogRecorder.record`` after the mutation it describes has
been flushed in the same session, so entry and mutation commit together.
``record`` writes inside a SAVEPOINT: if the audit insert fails, only the
savepoint is rolled back, the failure is logged on the ``audit`` logger and
``None`` is returned so the caller can flag the response. The mutation
itself is kept.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medstock.core.exceptions import StorageError, ValidationError
from medstock.models.audit_log import ActivityType, AuditLog
from medstock.models.inventory_item import InventoryItem

logger = logging.getLogger("audit")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _range_start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return _as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _range_end_exclusive(value: date | datetime) -> Tuple[datetime, bool]:
    """Upper bound for an inclusive end. A bare date covers the whole day."""
    if isinstance(value, datetime):
        return _as_utc(value), False
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc), True


def describe_stock_change(item: InventoryItem, delta: int) -> str:
    """Human readable summary, e.g. ``Added 10 boxes of N95 Masks``."""
    verb = "Added" if delta > 0 else "Removed"
    return f"{verb} {abs(delta)} {item.unit} of {item.name}"


def stock_activity_type(delta: int) -> ActivityType:
    return ActivityType.STOCK_ADDED if delta > 0 else ActivityType.STOCK_REMOVED


class AuditLogRecorder:
    """Write-only ledger of mutating actions plus read queries over it."""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        user_id: int,
        activity_type: ActivityType,
        details: str,
        item_id: Optional[int] = None,
        item_code: Optional[str] = None,
    ) -> AuditLog:
        """Persist one audit entry and return it (flushed, not committed)."""
        if not user_id:
            raise ValidationError("user_id is required", field="user_id")
        if not details:
            raise ValidationError("details are required", field="details")

        entry = AuditLog(
            user_id=user_id,
            activity_type=ActivityType(activity_type),
            item_id=item_id,
            item_code=item_code,
            details=details,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def record(
        self,
        user_id: int,
        activity_type: ActivityType,
        details: str,
        item_id: Optional[int] = None,
        item_code: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Best-effort append inside a savepoint.

        Returns the entry, or None when the write failed. Failures are
        never silent: they are logged with the full context of the action.
        """
        try:
            with self.db.begin_nested():
                return self.append(
                    user_id=user_id,
                    activity_type=activity_type,
                    details=details,
                    item_id=item_id,
                    item_code=item_code,
                )
        except (SQLAlchemyError, ValidationError):
            logger.exception(
                "Failed to write audit log entry: user_id=%s activity=%s item_id=%s item_code=%s details=%r",
                user_id, getattr(activity_type, "value", activity_type), item_id, item_code, details,
            )
            return None

    def query(
        self,
        page: int = 1,
        page_size: int = 10,
        user_id: Optional[int] = None,
        item_id: Optional[int] = None,
        activity_type: Optional[ActivityType] = None,
        start_date: Optional[date | datetime] = None,
        end_date: Optional[date | datetime] = None,
    ) -> Tuple[List[AuditLog], int]:
        """Filtered, newest-first page of audit entries and the filtered total."""
        conditions = []
        if user_id is not None:
            conditions.append(AuditLog.user_id == user_id)
        if item_id is not None:
            conditions.append(AuditLog.item_id == item_id)
        if activity_type is not None:
            conditions.append(AuditLog.activity_type == ActivityType(activity_type))
        if start_date is not None:
            conditions.append(AuditLog.created_at >= _range_start(start_date))
        if end_date is not None:
            bound, exclusive = _range_end_exclusive(end_date)
            conditions.append(AuditLog.created_at < bound if exclusive else AuditLog.created_at <= bound)

        page = max(page, 1)
        try:
            total = self.db.scalar(
                select(func.count(AuditLog.id)).where(*conditions)
            ) or 0
            logs = self.db.scalars(
                select(AuditLog)
                .where(*conditions)
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
        except SQLAlchemyError as e:
            logger.exception("Failed to query audit logs")
            raise StorageError("Failed to query audit logs") from e
        return list(logs), total

    def recent(self, limit: int = 5) -> List[AuditLog]:
        """Newest entries first, for activity feeds."""
        logs, _ = self.query(page=1, page_size=limit)
        return logs
