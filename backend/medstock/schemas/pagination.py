"""Pagination schemas and utilities.

List endpoints return a 1-indexed envelope:
    {"<items|logs|users>": [...], "page": 1, "limit": 10, "total": 42, "totalPages": 5}
"""

import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PageMeta(APIModel):
    page: int = Field(description="1-indexed page number")
    limit: int = Field(description="Page size requested")
    total: int = Field(description="Total number of rows matching the filters")
    total_pages: int = Field(description="ceil(total / limit)")

    @staticmethod
    def values(page: int, limit: int, total: int) -> dict:
        return {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }


class PaginatedResponse(PageMeta, Generic[T]):
    """Generic paginated response wrapper keyed by ``items``."""

    items: List[T]

    @classmethod
    def create(cls, items: List[T], total: int, page: int, limit: int) -> "PaginatedResponse[T]":
        return cls.model_validate({"items": items, **PageMeta.values(page, limit, total)}, from_attributes=True)
