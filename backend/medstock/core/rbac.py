"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from medstock.core.security import decode_access_token
from medstock.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    ADMIN = "admin"
    STAFF = "staff"


# Role hierarchy: admin > staff
ROLE_HIERARCHY = {
    UserRole.ADMIN: 2,
    UserRole.STAFF: 1,
}


class TokenData:
    """Authenticated caller.

    Attributes:
        user_id: The user's database ID (the audit trail actor).
        username: The login name.
        role: The user's role (admin/staff).
    """

    def __init__(self, user_id: int, username: str, role: UserRole, name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.username = username
        self.role = role
        self.name = name or username


def _token_from_request(request: Request) -> dict | None:
    """Bearer header first, then the ``access_token`` cookie."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            payload = decode_access_token(cookie_token)

    return payload


async def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Get the current authenticated user from the JWT token.

    The user row is re-read so that deactivated accounts lose access
    immediately instead of at token expiry.
    """
    from medstock.models.user import User

    payload = _token_from_request(request)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    username = payload.get("username")
    if user_id is None or username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user = db.get(User, int(user_id))
    except ValueError:
        user = None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive or no longer exists",
        )

    return TokenData(user_id=user.id, username=user.username, role=user.role, name=user.name)


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


# Common role dependencies
RequireAdmin = Annotated[TokenData, Depends(require_role(UserRole.ADMIN))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
