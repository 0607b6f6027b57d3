"""User accounts: admin management and login."""

import logging
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medstock.core.exceptions import StorageError, ValidationError
from medstock.core.rbac import UserRole
from medstock.core.security import get_password_hash, verify_password
from medstock.db.base import utcnow
from medstock.models.user import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
USER_FIELDS = ("name", "username", "email", "role", "department", "is_active")


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.scalar(select(User).where(User.username == username))

    def list(self, page: int = 1, page_size: int = 10) -> Tuple[List[User], int]:
        page = max(page, 1)
        total = self.db.scalar(select(func.count(User.id))) or 0
        users = self.db.scalars(
            select(User).order_by(User.id).offset((page - 1) * page_size).limit(page_size)
        ).all()
        return list(users), total

    def _check_unique(self, field: str, value: str, exclude_id: Optional[int] = None) -> None:
        column = getattr(User, field)
        query = select(User.id).where(column == value)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if self.db.scalar(query) is not None:
            raise ValidationError(f"{field.capitalize()} already exists", field=field)

    def _hash(self, password: Any) -> str:
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )
        return get_password_hash(password)

    def _flush(self, action: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error while trying to %s user", action)
            raise StorageError(f"Failed to {action} user") from e

    def create(self, data: Mapping[str, Any]) -> User:
        for field in ("name", "username", "email"):
            if not data.get(field):
                raise ValidationError(f"{field} is required", field=field)
        self._check_unique("username", data["username"])
        self._check_unique("email", data["email"])

        user = User(
            name=data["name"],
            username=data["username"],
            email=data["email"],
            password_hash=self._hash(data.get("password")),
            role=UserRole(data.get("role") or UserRole.STAFF),
            department=data.get("department"),
            is_active=data.get("is_active", True),
        )
        self.db.add(user)
        self._flush("create")
        logger.info("Created user %s (%s, role=%s)", user.id, user.username, user.role.value)
        return user

    def update(self, user_id: int, data: Mapping[str, Any]) -> Optional[User]:
        user = self.get(user_id)
        if user is None:
            return None

        for field in ("username", "email"):
            if data.get(field) and data[field] != getattr(user, field):
                self._check_unique(field, data[field], exclude_id=user.id)
        for field in USER_FIELDS:
            if field in data and data[field] is not None:
                setattr(user, field, UserRole(data[field]) if field == "role" else data[field])
        if data.get("password"):
            user.password_hash = self._hash(data["password"])

        self._flush("update")
        return user

    def toggle_active(self, user_id: int) -> Optional[User]:
        user = self.get(user_id)
        if user is None:
            return None
        user.is_active = not user.is_active
        self._flush("update")
        logger.info("%s user %s", "Activated" if user.is_active else "Deactivated", user.username)
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user for valid credentials (active or not), else None.

        Records ``last_login`` on success; the caller commits.
        """
        user = self.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        if user.is_active:
            user.last_login = utcnow()
            self._flush("update")
        return user
