"""User schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, model_validator

from medstock.core.rbac import UserRole
from medstock.schemas.pagination import APIModel, PageMeta


class UserCreate(APIModel):
    """Admin-created account. ``confirmPassword`` is checked when sent."""

    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: Optional[str] = None
    role: UserRole = UserRole.STAFF
    department: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def passwords_match(self) -> "UserCreate":
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserUpdate(APIModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    role: Optional[UserRole] = None
    department: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class UserResponse(APIModel):
    id: int
    name: str
    username: str
    email: str
    role: UserRole
    department: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class UserPage(PageMeta):
    users: List[UserResponse]
