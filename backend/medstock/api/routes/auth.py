"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser
from medstock.core.security import create_access_token
from medstock.db.session import DbSession
from medstock.schemas.auth import LoginRequest, Token
from medstock.schemas.user import UserResponse
from medstock.services.user_service import UserService

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate by username and password and return a JWT token."""
    client_ip = request.client.host if request.client else "unknown"
    user = UserService(db).authenticate(login_request.username, login_request.password)

    if user is None:
        logger.warning("Failed login attempt for username: %s from IP: %s", login_request.username, client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    if not user.is_active:
        logger.warning("Login attempt for inactive user: %s (ID: %s) from IP: %s", user.username, user.id, client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    db.commit()
    logger.info("Successful login: %s (ID: %s, role: %s) from IP: %s", user.username, user.id, user.role.value, client_ip)
    token = create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role.value}
    )
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
@limiter.limit("60/minute")
def get_me(request: Request, db: DbSession, current_user: CurrentUser):
    """Get the current user's profile."""
    user = UserService(db).get(current_user.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
