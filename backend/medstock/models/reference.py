"""Reference data models: Department and Category."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medstock.db.base import Base, CreatedAtMixin


class Department(Base, CreatedAtMixin):
    """Hospital department that owns inventory (Emergency, Surgery, ...)."""

    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inventory_items: Mapped[list["InventoryItem"]] = relationship(
        "InventoryItem", back_populates="department"
    )


class Category(Base, CreatedAtMixin):
    """Supply category (PPE, Pharmaceuticals, ...)."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    inventory_items: Mapped[list["InventoryItem"]] = relationship(
        "InventoryItem", back_populates="category"
    )


# Forward references
from medstock.models.inventory_item import InventoryItem
