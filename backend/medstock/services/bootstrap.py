"""Idempotent bootstrap of default users, reference data and demo inventory.

Nothing here runs on import. The application lifespan calls
``seed_initial_data`` when ``SEED_ON_STARTUP`` is set, and ``seed_data.py``
calls it from the command line. Rows are matched by natural key
(username, name, item code) so running it twice creates nothing new.
"""

import logging
from typing import Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from medstock.core.rbac import UserRole
from medstock.models.inventory_item import InventoryItem
from medstock.models.reference import Category, Department
from medstock.services.inventory_repository import InventoryItemRepository
from medstock.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    {
        "name": "Admin User",
        "username": "admin",
        "email": "admin@hospital.org",
        "password": "admin123",
        "role": UserRole.ADMIN,
        "department": "Administration",
    },
    {
        "name": "Staff User",
        "username": "staff",
        "email": "staff@hospital.org",
        "password": "staff123",
        "role": UserRole.STAFF,
        "department": "Emergency",
    },
]

DEFAULT_DEPARTMENTS = [
    ("Emergency", "Emergency department"),
    ("Surgery", "Surgery department"),
    ("Pediatrics", "Pediatrics department"),
    ("Cardiology", "Cardiology department"),
    ("General", "General department"),
]

DEFAULT_CATEGORIES = [
    ("PPE", "Personal Protective Equipment"),
    ("Pharmaceuticals", "Medicines and drugs"),
    ("Equipment", "Medical equipment"),
    ("Supplies", "General medical supplies"),
]

# (item code, name, description, department, category, stock, unit, threshold)
DEMO_ITEMS = [
    ("PPE-001", "N95 Masks", "N95 respirator masks", "Emergency", "PPE", 25, "units", 50),
    ("PPE-002", "Surgical Gloves (S)", "Small surgical gloves", "Surgery", "PPE", 10, "boxes", 20),
    ("MED-023", "IV Saline Solution", "Intravenous saline solution", "General", "Pharmaceuticals", 30, "bags", 40),
    ("EQP-108", "Blood Pressure Monitor", "Digital blood pressure monitoring device", "Cardiology", "Equipment", 15, "units", 5),
]


def _get_or_create_named(db: Session, model, name: str, description: str):
    row = db.scalar(select(model).where(model.name == name))
    if row is not None:
        return row, False
    row = model(name=name, description=description)
    db.add(row)
    db.flush()
    return row, True


def seed_initial_data(db: Session, include_demo_inventory: bool = True) -> Dict[str, int]:
    """Create whatever default rows are missing. The caller commits.

    Returns the number of rows created per table.
    """
    created = {"users": 0, "departments": 0, "categories": 0, "inventory_items": 0}

    users = UserService(db)
    for account in DEFAULT_USERS:
        if users.get_by_username(account["username"]) is None:
            users.create(account)
            created["users"] += 1

    departments = {}
    for name, description in DEFAULT_DEPARTMENTS:
        departments[name], was_created = _get_or_create_named(db, Department, name, description)
        created["departments"] += int(was_created)

    categories = {}
    for name, description in DEFAULT_CATEGORIES:
        categories[name], was_created = _get_or_create_named(db, Category, name, description)
        created["categories"] += int(was_created)

    if include_demo_inventory:
        repo = InventoryItemRepository(db)
        for code, name, description, dept, cat, stock, unit, threshold in DEMO_ITEMS:
            if db.scalar(select(InventoryItem.id).where(InventoryItem.item_id == code)) is not None:
                continue
            repo.create({
                "item_id": code,
                "name": name,
                "description": description,
                "department_id": departments[dept].id,
                "category_id": categories[cat].id,
                "current_stock": stock,
                "unit": unit,
                "threshold": threshold,
            })
            created["inventory_items"] += 1

    if any(created.values()):
        logger.info("Bootstrap created: %s", created)
    else:
        logger.debug("Bootstrap: nothing to create")
    return created
