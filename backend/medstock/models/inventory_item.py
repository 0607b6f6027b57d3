"""Inventory item model and its derived stock status."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medstock.db.base import Base, TimestampMixin, VersionMixin


class ItemStatus(str, Enum):
    """Stock status. Always derived from current_stock and threshold."""

    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class InventoryItem(Base, TimestampMixin, VersionMixin):
    """A tracked medical supply."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_items_stock_non_negative"),
        CheckConstraint("threshold > 0", name="ck_inventory_items_threshold_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    item_id: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department_id: Mapped[int] = mapped_column(
        ForeignKey("departments.id"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False, index=True
    )
    current_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)  # boxes, units, bags
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ItemStatus] = mapped_column(
        SAEnum(ItemStatus, name="item_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)

    # Relationships
    department: Mapped["Department"] = relationship("Department", back_populates="inventory_items")
    category: Mapped["Category"] = relationship("Category", back_populates="inventory_items")
    audit_logs: Mapped[list["AuditLog"]] = relationship(
        "AuditLog", back_populates="item", passive_deletes=True
    )


# Forward references
from medstock.models.reference import Department, Category
from medstock.models.audit_log import AuditLog
