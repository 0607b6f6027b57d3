"""Category routes. Reads are open to any signed-in user; writes need admin."""

from typing import List

from fastapi import APIRouter, HTTPException, Request, Response, status

from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser, RequireAdmin
from medstock.core.responses import commit_mutation
from medstock.db.session import DbSession
from medstock.models.audit_log import ActivityType
from medstock.schemas.reference import CategoryCreate, CategoryResponse, CategoryUpdate
from medstock.services.audit_service import AuditLogRecorder
from medstock.services.reference_service import ReferenceDataService

router = APIRouter()


@router.get("/", response_model=List[CategoryResponse])
@limiter.limit("60/minute")
def list_categories(request: Request, db: DbSession, current_user: CurrentUser):
    return ReferenceDataService.categories(db).list()


@router.get("/{category_id}", response_model=CategoryResponse)
@limiter.limit("60/minute")
def get_category(request: Request, category_id: int, db: DbSession, current_user: CurrentUser):
    category = ReferenceDataService.categories(db).get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(
    request: Request,
    response: Response,
    payload: CategoryCreate,
    db: DbSession,
    current_user: RequireAdmin,
):
    category = ReferenceDataService.categories(db).create(payload.model_dump())
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.CREATED,
        details=f"Created category: {category.name}",
    )
    commit_mutation(db, response, entry)
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
@limiter.limit("30/minute")
def update_category(
    request: Request,
    response: Response,
    category_id: int,
    payload: CategoryUpdate,
    db: DbSession,
    current_user: RequireAdmin,
):
    category = ReferenceDataService.categories(db).update(
        category_id, payload.model_dump(exclude_unset=True)
    )
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.UPDATED,
        details=f"Updated category: {category.name}",
    )
    commit_mutation(db, response, entry)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_category(request: Request, category_id: int, db: DbSession, current_user: RequireAdmin):
    """Delete a category. Refused with 409 while items are still filed under it."""
    service = ReferenceDataService.categories(db)
    category = service.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    name = category.name

    service.delete(category_id)
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.DELETED,
        details=f"Deleted category: {name}",
    )
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    commit_mutation(db, response, entry)
    return response
