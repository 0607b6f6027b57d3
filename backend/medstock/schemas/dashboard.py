"""Dashboard schemas."""

from typing import List

from pydantic import Field

from medstock.schemas.audit_log import AuditLogResponse
from medstock.schemas.inventory import InventoryItemResponse
from medstock.schemas.pagination import APIModel


class DashboardStats(APIModel):
    """Headline counts shown on the dashboard."""

    total_items: int = Field(ge=0)
    low_stock_count: int = Field(ge=0)
    recently_added: int = Field(ge=0)
    out_of_stock: int = Field(ge=0)
    expiring_soon: int = Field(ge=0)


class ActivityFeed(APIModel):
    logs: List[AuditLogResponse]


class ItemList(APIModel):
    """Unpaginated list of items, e.g. alert banners."""

    items: List[InventoryItemResponse]
    total: int
