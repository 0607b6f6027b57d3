"""Seed default users, departments, categories and demo inventory.

Safe to run repeatedly: rows are matched by username, name or item code
and only missing ones are created.

Usage:
    cd backend
    python seed_data.py            # users, reference data and demo items
    python seed_data.py --no-demo  # skip the demo inventory items
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sqlalchemy.exc import SQLAlchemyError

from medstock.db.base import Base
from medstock.db.session import SessionLocal, engine
from medstock.models import *  # noqa: F401,F403 - register tables
from medstock.services.bootstrap import seed_initial_data


def seed(include_demo_inventory: bool = True) -> dict:
    """Create tables if needed and insert whatever default rows are missing."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_initial_data(db, include_demo_inventory=include_demo_inventory)
        db.commit()
        print(f"Seed data committed successfully: {created}")
        return created
    except SQLAlchemyError as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed(include_demo_inventory="--no-demo" not in sys.argv[1:])
