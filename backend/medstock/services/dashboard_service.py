"""Dashboard/Alert Aggregator - read-only counts and alert lists.

Everything here is derived from the inventory repository and the
expiration classifier; the aggregator keeps no state of its own.

Usage:
    from medstock.services.dashboard_service import DashboardService

    stats = DashboardService(db).stats()
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from medstock.core.config import settings
from medstock.db.base import utcnow
from medstock.models.inventory_item import InventoryItem, ItemStatus
from medstock.services.expiration import today
from medstock.services.inventory_repository import InventoryItemRepository

logger = logging.getLogger(__name__)


class DashboardService:
    """Counts and filtered lists for the dashboard and alert banners."""

    def __init__(self, db: Session):
        self.db = db
        self.items = InventoryItemRepository(db)

    def stats(self, as_of: Optional[date] = None) -> Dict[str, Any]:
        """Headline counts over the current inventory."""
        since = utcnow() - timedelta(days=settings.recently_added_days)
        result = {
            "total_items": self.items.count(),
            "low_stock_count": self.items.count(status=ItemStatus.LOW_STOCK),
            "recently_added": self.items.count_created_since(since),
            "out_of_stock": self.items.count(status=ItemStatus.OUT_OF_STOCK),
            "expiring_soon": self.items.count(expiring=True, as_of=as_of or today()),
        }
        logger.debug("Dashboard stats: %s", result)
        return result

    def low_stock_items(self, page: int = 1, page_size: int = 10) -> Tuple[List[InventoryItem], int]:
        """Items at or below threshold but not empty."""
        return self.items.list(page=page, page_size=page_size, status=ItemStatus.LOW_STOCK)

    def out_of_stock_items(self, page: int = 1, page_size: int = 10) -> Tuple[List[InventoryItem], int]:
        return self.items.list(page=page, page_size=page_size, status=ItemStatus.OUT_OF_STOCK)

    def stock_alert_items(self) -> List[InventoryItem]:
        """Low and out-of-stock items together, emptiest first."""
        return self.items.with_statuses([ItemStatus.OUT_OF_STOCK, ItemStatus.LOW_STOCK])

    def soon_to_expire_items(self, as_of: Optional[date] = None) -> List[InventoryItem]:
        """Items expiring within the soon window (critical included), soonest first."""
        return self.items.expiring_items(critical_only=False, as_of=as_of)

    def critical_expiration_items(self, as_of: Optional[date] = None) -> List[InventoryItem]:
        """Items expiring within the critical window, soonest first."""
        return self.items.expiring_items(critical_only=True, as_of=as_of)
