"""Inventory Item Repository.

Owns every write to ``inventory_items``. Each write recomputes ``status``
through ``derive_status`` and persists it in the same flush as the stock or
threshold change, so the status invariant holds at every commit point.

Methods flush but never commit: the caller (route) owns the transaction and
appends the matching audit entry before committing.

Flow of ``adjust_stock``:
1. Read the row (``SELECT ... FOR UPDATE`` where the backend supports it)
2. Compute new stock, reject if negative
3. ``UPDATE ... WHERE id = :id AND version = :read_version`` writing stock,
   status, version + 1 and updated_at in one statement
4. Zero rows updated means another writer won; re-read and retry
"""

import logging
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from medstock.core.config import settings
from medstock.core.exceptions import (
    InvalidOperationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from medstock.db.base import utcnow
from medstock.models.audit_log import AuditLog
from medstock.models.inventory_item import InventoryItem, ItemStatus
from medstock.models.reference import Category, Department
from medstock.services.expiration import ExpirationBucket, expiration_window, expiring_window, today
from medstock.services.stock_status import derive_status

logger = logging.getLogger(__name__)

# Columns a caller may set. status, id, version and timestamps are system managed.
EDITABLE_FIELDS = (
    "item_id",
    "name",
    "description",
    "department_id",
    "category_id",
    "current_stock",
    "unit",
    "threshold",
    "expiration_date",
)
REQUIRED_ON_CREATE = ("item_id", "name", "department_id", "category_id", "unit", "threshold")


def parse_expiration_date(value: Any) -> Optional[date]:
    """Accept a date, a datetime or an ISO-8601 string; empty means no expiration."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise ValidationError(f"Invalid date format for expirationDate: {value!r}", field="expiration_date")
    raise ValidationError(f"Invalid date format for expirationDate: {value!r}", field="expiration_date")


def _require_int(data: Mapping[str, Any], field: str) -> int:
    value = data[field]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    return value


def _is_item_code_conflict(error: IntegrityError) -> bool:
    """True when ``error`` is the unique constraint on ``inventory_items.item_id``.

    SQLite reports "UNIQUE constraint failed: inventory_items.item_id";
    PostgreSQL names the violated index or constraint, which contains the
    table and column.
    """
    message = str(error.orig).lower()
    if "inventory_items.item_id" in message:
        return True
    return "unique" in message and "inventory_items" in message and "item_id" in message


class InventoryItemRepository:
    """Create, read, update, adjust and delete inventory items."""

    def __init__(self, db: Session):
        self.db = db

    # ===== VALIDATION =====

    def _clean(self, data: Mapping[str, Any]) -> dict:
        """Keep editable fields only and validate their values."""
        cleaned = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}

        for field in ("item_id", "name", "unit"):
            if field in cleaned:
                value = cleaned[field]
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(f"{field} is required", field=field)
                cleaned[field] = value.strip()

        if "threshold" in cleaned:
            if _require_int(cleaned, "threshold") <= 0:
                raise ValidationError("threshold must be a positive integer", field="threshold")
        if "current_stock" in cleaned:
            if _require_int(cleaned, "current_stock") < 0:
                raise ValidationError("currentStock cannot be negative", field="current_stock")
        for field in ("department_id", "category_id"):
            if field in cleaned:
                _require_int(cleaned, field)
        if "expiration_date" in cleaned:
            cleaned["expiration_date"] = parse_expiration_date(cleaned["expiration_date"])

        return cleaned

    def _check_references(self, cleaned: Mapping[str, Any]) -> None:
        if "department_id" in cleaned and self.db.get(Department, cleaned["department_id"]) is None:
            raise NotFoundError("Department", cleaned["department_id"])
        if "category_id" in cleaned and self.db.get(Category, cleaned["category_id"]) is None:
            raise NotFoundError("Category", cleaned["category_id"])

    def _check_item_id_unique(self, item_code: str, exclude_id: Optional[int] = None) -> None:
        query = select(InventoryItem.id).where(InventoryItem.item_id == item_code)
        if exclude_id is not None:
            query = query.where(InventoryItem.id != exclude_id)
        if self.db.scalar(query) is not None:
            raise ValidationError(f"Item ID '{item_code}' already exists", field="item_id")

    def _flush(self, action: str, item_code: Optional[str] = None) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            # A concurrent create or rename can take the code after the pre-check
            if item_code is not None and _is_item_code_conflict(e):
                logger.warning("Item ID %s taken concurrently while trying to %s", item_code, action)
                raise ValidationError(f"Item ID '{item_code}' already exists", field="item_id") from e
            logger.exception("Constraint violation while trying to %s", action)
            raise StorageError(f"Constraint violation while trying to {action}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error while trying to %s", action)
            raise StorageError(f"Database error while trying to {action}") from e

    # ===== READS =====

    def get_by_id(self, item_id: int) -> Optional[InventoryItem]:
        return self.db.get(InventoryItem, item_id)

    def _conditions(
        self,
        status: Optional[ItemStatus] = None,
        department_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        expiring: bool = False,
        as_of: Optional[date] = None,
    ) -> list:
        conditions = []
        if status is not None:
            conditions.append(InventoryItem.status == ItemStatus(status))
        if department_id is not None:
            conditions.append(InventoryItem.department_id == department_id)
        if category_id is not None:
            conditions.append(InventoryItem.category_id == category_id)
        if search:
            term = search.strip().lower()
            conditions.append(or_(
                func.lower(InventoryItem.name).contains(term, autoescape=True),
                func.lower(InventoryItem.item_id).contains(term, autoescape=True),
            ))
        if expiring:
            after, until = expiring_window(as_of or today())
            conditions.append(InventoryItem.expiration_date > after)
            conditions.append(InventoryItem.expiration_date <= until)
        return conditions

    def list(
        self,
        page: int = 1,
        page_size: int = 10,
        status: Optional[ItemStatus] = None,
        department_id: Optional[int] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        expiring: bool = False,
        as_of: Optional[date] = None,
    ) -> Tuple[List[InventoryItem], int]:
        """Filtered page of items (1-indexed) and the size of the filtered set."""
        conditions = self._conditions(status, department_id, category_id, search, expiring, as_of)
        page = max(page, 1)
        page_size = max(page_size, 1)
        try:
            total = self.db.scalar(select(func.count(InventoryItem.id)).where(*conditions)) or 0
            items = self.db.scalars(
                select(InventoryItem)
                .where(*conditions)
                .order_by(InventoryItem.id.asc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
        except SQLAlchemyError as e:
            logger.exception("Failed to list inventory items")
            raise StorageError("Failed to list inventory items") from e
        return list(items), total

    def count(self, **filters) -> int:
        conditions = self._conditions(**filters)
        try:
            return self.db.scalar(select(func.count(InventoryItem.id)).where(*conditions)) or 0
        except SQLAlchemyError as e:
            logger.exception("Failed to count inventory items")
            raise StorageError("Failed to count inventory items") from e

    def count_created_since(self, since: datetime) -> int:
        try:
            return self.db.scalar(
                select(func.count(InventoryItem.id)).where(InventoryItem.created_at >= since)
            ) or 0
        except SQLAlchemyError as e:
            logger.exception("Failed to count recently added items")
            raise StorageError("Failed to count recently added items") from e

    def with_statuses(self, statuses: List[ItemStatus]) -> List[InventoryItem]:
        """All items in any of ``statuses``, lowest stock first."""
        try:
            return list(self.db.scalars(
                select(InventoryItem)
                .where(InventoryItem.status.in_(statuses))
                .order_by(InventoryItem.current_stock.asc(), InventoryItem.id.asc())
            ).all())
        except SQLAlchemyError as e:
            logger.exception("Failed to load items by status")
            raise StorageError("Failed to load items by status") from e

    def expiring_items(self, critical_only: bool = False, as_of: Optional[date] = None) -> List[InventoryItem]:
        """Items in the critical (or critical + soon) window, soonest first."""
        as_of = as_of or today()
        if critical_only:
            after, until = expiration_window(ExpirationBucket.CRITICAL, as_of)
        else:
            after, until = expiring_window(as_of)
        try:
            return list(self.db.scalars(
                select(InventoryItem)
                .where(
                    InventoryItem.expiration_date > after,
                    InventoryItem.expiration_date <= until,
                )
                .order_by(InventoryItem.expiration_date.asc(), InventoryItem.id.asc())
            ).all())
        except SQLAlchemyError as e:
            logger.exception("Failed to load expiring items")
            raise StorageError("Failed to load expiring items") from e

    # ===== WRITES =====

    def create(self, data: Mapping[str, Any]) -> InventoryItem:
        """Create an item. ``status`` is derived, never taken from ``data``."""
        missing = [f for f in REQUIRED_ON_CREATE if data.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}", field=missing[0])

        cleaned = self._clean(data)
        cleaned.setdefault("current_stock", 0)
        self._check_references(cleaned)
        self._check_item_id_unique(cleaned["item_id"])

        now = utcnow()
        item = InventoryItem(
            **cleaned,
            status=derive_status(cleaned["current_stock"], cleaned["threshold"]),
            created_at=now,
            updated_at=now,
        )
        self.db.add(item)
        self._flush("create inventory item", item_code=item.item_id)
        logger.info(
            "Created inventory item %s (%s): stock=%s threshold=%s status=%s",
            item.id, item.item_id, item.current_stock, item.threshold, item.status.value,
        )
        return item

    def update(self, item_id: int, data: Mapping[str, Any]) -> Optional[InventoryItem]:
        """Apply a partial update; returns None when the item does not exist."""
        cleaned = self._clean(data)
        item = self.db.get(InventoryItem, item_id, with_for_update=True)
        if item is None:
            return None

        self._check_references(cleaned)
        if "item_id" in cleaned and cleaned["item_id"] != item.item_id:
            self._check_item_id_unique(cleaned["item_id"], exclude_id=item.id)

        for field, value in cleaned.items():
            setattr(item, field, value)
        item.status = derive_status(item.current_stock, item.threshold)
        item.updated_at = utcnow()
        item.increment_version()

        self._flush("update inventory item", item_code=cleaned.get("item_id"))
        logger.info(
            "Updated inventory item %s (%s): fields=%s status=%s",
            item.id, item.item_id, sorted(cleaned), item.status.value,
        )
        return item

    def adjust_stock(self, item_id: int, delta: int) -> Optional[InventoryItem]:
        """Add (delta > 0) or remove (delta < 0) stock atomically.

        Raises InvalidOperationError when the result would be negative; the
        row is left untouched in that case.
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("quantity must be an integer", field="quantity")

        for attempt in range(1, settings.stock_adjust_max_retries + 1):
            try:
                item = self.db.get(
                    InventoryItem, item_id, with_for_update=True, populate_existing=True
                )
            except SQLAlchemyError as e:
                logger.exception("Failed to read inventory item %s", item_id)
                raise StorageError("Failed to read inventory item") from e
            if item is None:
                return None
            if delta == 0:
                return item

            new_stock = item.current_stock + delta
            if new_stock < 0:
                raise InvalidOperationError("Cannot reduce stock below zero")

            read_version = item.version
            try:
                result = self.db.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item_id, InventoryItem.version == read_version)
                    .values(
                        current_stock=new_stock,
                        status=derive_status(new_stock, item.threshold),
                        version=read_version + 1,
                        updated_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception("Failed to adjust stock for inventory item %s", item_id)
                raise StorageError("Failed to adjust stock") from e

            if result.rowcount == 1:
                self.db.refresh(item)
                logger.info(
                    "Adjusted stock of %s (%s) by %+d: %s -> %s (%s)",
                    item.id, item.item_id, delta, new_stock - delta, item.current_stock, item.status.value,
                )
                return item

            logger.info(
                "Concurrent modification of inventory item %s (attempt %s/%s), retrying",
                item_id, attempt, settings.stock_adjust_max_retries,
            )

        raise StorageError(
            f"Could not adjust stock for item {item_id} after "
            f"{settings.stock_adjust_max_retries} attempts due to concurrent updates"
        )

    def delete(self, item_id: int) -> bool:
        """Hard delete. Audit rows are kept and lose only their item_id link."""
        item = self.db.get(InventoryItem, item_id)
        if item is None:
            return False

        try:
            self.db.execute(
                update(AuditLog)
                .where(AuditLog.item_id == item_id)
                .values(item_id=None)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Failed to detach audit logs from inventory item %s", item_id)
            raise StorageError("Failed to delete inventory item") from e

        code = item.item_id
        self.db.delete(item)
        self._flush("delete inventory item")
        logger.info("Deleted inventory item %s (%s)", item_id, code)
        return True
