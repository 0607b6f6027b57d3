"""Department and category reference data."""

import logging
from typing import Any, List, Mapping, Optional, Type, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medstock.core.exceptions import InvalidOperationError, StorageError, ValidationError
from medstock.models.inventory_item import InventoryItem
from medstock.models.reference import Category, Department

logger = logging.getLogger(__name__)

ReferenceModel = Union[Department, Category]


class ReferenceDataService:
    """CRUD for a name/description lookup table referenced by inventory items."""

    def __init__(self, db: Session, model: Type[ReferenceModel], label: str, fk_column):
        self.db = db
        self.model = model
        self.label = label
        self.fk_column = fk_column

    @classmethod
    def departments(cls, db: Session) -> "ReferenceDataService":
        return cls(db, Department, "Department", InventoryItem.department_id)

    @classmethod
    def categories(cls, db: Session) -> "ReferenceDataService":
        return cls(db, Category, "Category", InventoryItem.category_id)

    def list(self) -> List[ReferenceModel]:
        return list(self.db.scalars(select(self.model).order_by(self.model.name)).all())

    def get(self, row_id: int) -> Optional[ReferenceModel]:
        return self.db.get(self.model, row_id)

    def _clean_name(self, name: Any) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name is required", field="name")
        return name.strip()

    def _check_unique(self, name: str, exclude_id: Optional[int] = None) -> None:
        query = select(self.model.id).where(func.lower(self.model.name) == name.lower())
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        if self.db.scalar(query) is not None:
            raise ValidationError(f"{self.label} '{name}' already exists", field="name")

    def _flush(self, action: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error while trying to %s %s", action, self.label.lower())
            raise StorageError(f"Failed to {action} {self.label.lower()}") from e

    def create(self, data: Mapping[str, Any]) -> ReferenceModel:
        name = self._clean_name(data.get("name"))
        self._check_unique(name)
        row = self.model(name=name, description=data.get("description"))
        self.db.add(row)
        self._flush("create")
        logger.info("Created %s %s (%s)", self.label.lower(), row.id, row.name)
        return row

    def update(self, row_id: int, data: Mapping[str, Any]) -> Optional[ReferenceModel]:
        row = self.get(row_id)
        if row is None:
            return None
        if "name" in data:
            name = self._clean_name(data["name"])
            self._check_unique(name, exclude_id=row.id)
            row.name = name
        if "description" in data:
            row.description = data["description"]
        self._flush("update")
        return row

    def delete(self, row_id: int) -> bool:
        """Delete a row; refused while inventory items still reference it."""
        row = self.get(row_id)
        if row is None:
            return False
        in_use = self.db.scalar(select(func.count(InventoryItem.id)).where(self.fk_column == row_id)) or 0
        if in_use:
            raise InvalidOperationError(
                f"{self.label} '{row.name}' is used by {in_use} inventory item(s) and cannot be deleted"
            )
        self.db.delete(row)
        self._flush("delete")
        logger.info("Deleted %s %s (%s)", self.label.lower(), row_id, row.name)
        return True
