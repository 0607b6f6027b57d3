"""User management routes (admin only)."""

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from medstock.core.config import settings
from medstock.core.rate_limit import limiter
from medstock.core.rbac import RequireAdmin
from medstock.core.responses import commit_mutation
from medstock.db.session import DbSession
from medstock.models.audit_log import ActivityType
from medstock.schemas.pagination import PageMeta
from medstock.schemas.user import UserCreate, UserPage, UserResponse, UserUpdate
from medstock.services.audit_service import AuditLogRecorder
from medstock.services.user_service import UserService

router = APIRouter()


@router.get("/", response_model=UserPage)
@limiter.limit("60/minute")
def list_users(
    request: Request,
    db: DbSession,
    current_user: RequireAdmin,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    users, total = UserService(db).list(page=page, page_size=limit)
    return UserPage.model_validate(
        {"users": users, **PageMeta.values(page, limit, total)}, from_attributes=True
    )


@router.get("/{user_id}", response_model=UserResponse)
@limiter.limit("60/minute")
def get_user(request: Request, user_id: int, db: DbSession, current_user: RequireAdmin):
    user = UserService(db).get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_user(
    request: Request,
    response: Response,
    payload: UserCreate,
    db: DbSession,
    current_user: RequireAdmin,
):
    """Create a user account. Username and email must be unique."""
    user = UserService(db).create(payload.model_dump(exclude={"confirm_password"}))
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.CREATED,
        details=f"Created user: {user.username} ({user.role.value})",
    )
    commit_mutation(db, response, entry)
    return user


@router.put("/{user_id}", response_model=UserResponse)
@limiter.limit("30/minute")
def update_user(
    request: Request,
    response: Response,
    user_id: int,
    payload: UserUpdate,
    db: DbSession,
    current_user: RequireAdmin,
):
    """Update a user. A new password is re-hashed."""
    user = UserService(db).update(user_id, payload.model_dump(exclude_unset=True))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.UPDATED,
        details=f"Updated user: {user.username}",
    )
    commit_mutation(db, response, entry)
    return user


@router.post("/{user_id}/toggle-active", response_model=UserResponse)
@limiter.limit("30/minute")
def toggle_user_active(
    request: Request,
    response: Response,
    user_id: int,
    db: DbSession,
    current_user: RequireAdmin,
):
    """Activate or deactivate a user. Admins cannot deactivate themselves."""
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user = UserService(db).toggle_active(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.UPDATED,
        details=f"{'Activated' if user.is_active else 'Deactivated'} user: {user.username}",
    )
    commit_mutation(db, response, entry)
    return user
