"""Shared helpers for mutating endpoints.

Every write follows the same shape:
    1. the service flushes the mutation,
    2. ``AuditLogRecorder.record`` writes the audit entry (or returns None),
    3. ``commit_mutation`` commits both and flags a missing audit entry.

A mutation whose audit entry failed is still committed; the response carries
``X-Audit-Status: failed`` so clients can surface it.
"""

import logging
from typing import Optional

from fastapi import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medstock.core.exceptions import StorageError
from medstock.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

AUDIT_STATUS_HEADER = "X-Audit-Status"


def commit_mutation(db: Session, response: Response, audit_entry: Optional[AuditLog]) -> None:
    """Commit the unit of work and mark the response when auditing failed."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Commit failed")
        raise StorageError("Failed to commit changes") from e

    if audit_entry is None:
        response.headers[AUDIT_STATUS_HEADER] = "failed"
