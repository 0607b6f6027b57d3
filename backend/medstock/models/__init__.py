"""SQLAlchemy models."""

from medstock.models.user import User
from medstock.models.reference import Department, Category
from medstock.models.inventory_item import InventoryItem, ItemStatus
from medstock.models.audit_log import AuditLog, ActivityType

__all__ = [
    "User",
    "Department",
    "Category",
    "InventoryItem",
    "ItemStatus",
    "AuditLog",
    "ActivityType",
]
