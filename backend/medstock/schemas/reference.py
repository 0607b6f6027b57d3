"""Department and category schemas.

Both tables have the same shape, so the request/response models are shared
and aliased per resource.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from medstock.schemas.pagination import APIModel


class ReferenceCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ReferenceUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class ReferenceResponse(APIModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime


DepartmentCreate = CategoryCreate = ReferenceCreate
DepartmentUpdate = CategoryUpdate = ReferenceUpdate
DepartmentResponse = CategoryResponse = ReferenceResponse
