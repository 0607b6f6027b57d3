"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from medstock.core.rbac import UserRole
from medstock.core.security import create_access_token, get_password_hash
from medstock.db.base import Base
from medstock.db.session import configure_sqlite, get_db
from medstock.main import app
# Import all models to ensure they're registered with Base.metadata
from medstock.models import *
from medstock.services.inventory_repository import InventoryItemRepository

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from medstock.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def _make_user(db_session: Session, username: str, role: UserRole, password: str) -> User:
    user = User(
        name=f"{username.capitalize()} User",
        username=username,
        email=f"{username}@hospital.org",
        password_hash=get_password_hash(password),
        role=role,
        department="Emergency",
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin", UserRole.ADMIN, "admin123")


@pytest.fixture
def staff_user(db_session: Session) -> User:
    return _make_user(db_session, "nurse", UserRole.STAFF, "nurse123")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Authentication headers for the admin user."""
    return _headers_for(admin_user)


@pytest.fixture
def auth_headers(staff_user: User) -> dict:
    """Authentication headers for a regular staff user."""
    return _headers_for(staff_user)


@pytest.fixture
def department(db_session: Session) -> Department:
    row = Department(name="Emergency", description="Emergency department")
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture
def category(db_session: Session) -> Category:
    row = Category(name="PPE", description="Personal Protective Equipment")
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture
def make_item(db_session: Session, department: Department, category: Category) -> Callable[..., InventoryItem]:
    """Factory creating committed inventory items with sensible defaults."""
    counter = {"n": 0}

    def _make(
        current_stock: int = 25,
        threshold: int = 50,
        expiration_date: date | None = None,
        **overrides,
    ) -> InventoryItem:
        counter["n"] += 1
        data = {
            "item_id": f"PPE-{counter['n']:03d}",
            "name": f"Test Item {counter['n']}",
            "department_id": department.id,
            "category_id": category.id,
            "current_stock": current_stock,
            "unit": "boxes",
            "threshold": threshold,
            "expiration_date": expiration_date,
        }
        data.update(overrides)
        item = InventoryItemRepository(db_session).create(data)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make
