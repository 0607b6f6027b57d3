"""Inventory item schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from medstock.core.exceptions import ValidationError
from medstock.models.inventory_item import ItemStatus
from medstock.schemas.pagination import APIModel, PaginatedResponse
from medstock.services.expiration import ExpirationBucket, classify_expiration, today
from medstock.services.inventory_repository import parse_expiration_date


def _coerce_expiration(value: Any) -> Optional[date]:
    try:
        return parse_expiration_date(value)
    except ValidationError as e:
        raise ValueError(e.message) from e


class InventoryItemCreate(APIModel):
    """Body of POST /inventory. Unknown keys (including ``status``) are dropped."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    item_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    department_id: int
    category_id: int
    current_stock: int = Field(0, ge=0)
    unit: str = Field(..., min_length=1, max_length=50)
    threshold: int = Field(..., gt=0)
    expiration_date: Optional[date] = None

    @field_validator("expiration_date", mode="before")
    @classmethod
    def parse_expiration(cls, v: Any) -> Optional[date]:
        return _coerce_expiration(v)


class InventoryItemUpdate(APIModel):
    """Body of PUT /inventory/{id}. Any subset of fields; ``status`` is ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    item_id: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    department_id: Optional[int] = None
    category_id: Optional[int] = None
    current_stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    threshold: Optional[int] = Field(None, gt=0)
    expiration_date: Optional[date] = None

    @field_validator("expiration_date", mode="before")
    @classmethod
    def parse_expiration(cls, v: Any) -> Optional[date]:
        return _coerce_expiration(v)


class StockAdjustmentRequest(APIModel):
    """Positive quantity adds stock, negative removes it."""

    quantity: int


class InventoryItemResponse(APIModel):
    id: int
    item_id: str
    name: str
    description: Optional[str] = None
    department_id: int
    category_id: int
    current_stock: int
    unit: str
    threshold: int
    status: ItemStatus
    expiration_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="expirationStatus")
    @property
    def expiration_status(self) -> ExpirationBucket:
        return classify_expiration(self.expiration_date, today())


InventoryItemPage = PaginatedResponse[InventoryItemResponse]
