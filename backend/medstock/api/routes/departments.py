"""Department routes. Reads are open to any signed-in user; writes need admin."""

from typing import List

from fastapi import APIRouter, HTTPException, Request, Response, status

from medstock.core.rate_limit import limiter
from medstock.core.rbac import CurrentUser, RequireAdmin
from medstock.core.responses import commit_mutation
from medstock.db.session import DbSession
from medstock.models.audit_log import ActivityType
from medstock.schemas.reference import DepartmentCreate, DepartmentResponse, DepartmentUpdate
from medstock.services.audit_service import AuditLogRecorder
from medstock.services.reference_service import ReferenceDataService

router = APIRouter()


@router.get("/", response_model=List[DepartmentResponse])
@limiter.limit("60/minute")
def list_departments(request: Request, db: DbSession, current_user: CurrentUser):
    return ReferenceDataService.departments(db).list()


@router.get("/{department_id}", response_model=DepartmentResponse)
@limiter.limit("60/minute")
def get_department(request: Request, department_id: int, db: DbSession, current_user: CurrentUser):
    department = ReferenceDataService.departments(db).get(department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.post("/", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_department(
    request: Request,
    response: Response,
    payload: DepartmentCreate,
    db: DbSession,
    current_user: RequireAdmin,
):
    department = ReferenceDataService.departments(db).create(payload.model_dump())
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.CREATED,
        details=f"Created department: {department.name}",
    )
    commit_mutation(db, response, entry)
    return department


@router.put("/{department_id}", response_model=DepartmentResponse)
@limiter.limit("30/minute")
def update_department(
    request: Request,
    response: Response,
    department_id: int,
    payload: DepartmentUpdate,
    db: DbSession,
    current_user: RequireAdmin,
):
    department = ReferenceDataService.departments(db).update(
        department_id, payload.model_dump(exclude_unset=True)
    )
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.UPDATED,
        details=f"Updated department: {department.name}",
    )
    commit_mutation(db, response, entry)
    return department


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_department(request: Request, department_id: int, db: DbSession, current_user: RequireAdmin):
    """Delete a department. Refused with 409 while items still belong to it."""
    service = ReferenceDataService.departments(db)
    department = service.get(department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    name = department.name

    service.delete(department_id)
    entry = AuditLogRecorder(db).record(
        user_id=current_user.id,
        activity_type=ActivityType.DELETED,
        details=f"Deleted department: {name}",
    )
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    commit_mutation(db, response, entry)
    return response
