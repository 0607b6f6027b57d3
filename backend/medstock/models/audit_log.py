"""Audit log model: append-only ledger of every mutating action."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medstock.db.base import Base, CreatedAtMixin


class ActivityType(str, Enum):
    """Kinds of audited actions."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    STOCK_ADDED = "stock_added"
    STOCK_REMOVED = "stock_removed"


class AuditLog(Base, CreatedAtMixin):
    """One audited action. Rows are never updated or deleted.

    ``item_id`` is set to NULL when the item is deleted; ``item_code``
    keeps the business code so the history stays readable.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    activity_type: Mapped[ActivityType] = mapped_column(
        SAEnum(ActivityType, name="activity_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User")
    item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem", back_populates="audit_logs")


# Forward references
from medstock.models.user import User
from medstock.models.inventory_item import InventoryItem
