"""Maintenance requests router."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.errors import PermissionDeniedError
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, get_current_user, require_capability
from makao.models.enums import MaintenancePriority, MaintenanceStatus, NotificationType
from makao.models.maintenance import MaintenanceRequest
from makao.schemas.base import Pagination
from makao.schemas.maintenance import (
    MaintenanceListResponse,
    MaintenanceRequestCreate,
    MaintenanceRequestResponse,
    MaintenanceRequestUpdate,
)
from makao.services.maintenance import MaintenanceService
from makao.services.notifications import (
    NotificationDispatcher,
    NotificationService,
    Recipient,
    dispatch_quietly,
    get_notification_dispatcher,
)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def request_to_response(request: MaintenanceRequest) -> MaintenanceRequestResponse:
    response = MaintenanceRequestResponse.model_validate(request)
    response.unit_number = request.unit.unit_number
    response.property_name = request.unit.property.name
    return response


@router.post("", response_model=MaintenanceRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: MaintenanceRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """File a maintenance request. Tenants file against their leased unit."""
    if not (current_user.can(Capability.SUBMIT_MAINTENANCE) or current_user.can(Capability.MANAGE_MAINTENANCE)):
        raise PermissionDeniedError("Insufficient permissions")

    request = await MaintenanceService(db).create(
        unit_id=data.unit_id,
        requester=current_user.user,
        title=data.title,
        description=data.description,
        priority=data.priority,
    )
    return request_to_response(request)


@router.get("", response_model=MaintenanceListResponse)
async def list_requests(
    request_status: Optional[MaintenanceStatus] = Query(None, alias="status"),
    priority: Optional[MaintenancePriority] = None,
    unit_id: Optional[UUID] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Requests visible to the caller, newest first."""
    requests, total = await MaintenanceService(db).list_requests(
        current_user.user,
        status=request_status,
        priority=priority,
        unit_id=unit_id,
        limit=limit,
        offset=offset,
    )
    return MaintenanceListResponse(
        requests=[request_to_response(r) for r in requests],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


@router.patch("/{request_id}", response_model=MaintenanceRequestResponse)
async def update_request(
    request_id: UUID,
    data: MaintenanceRequestUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.MANAGE_MAINTENANCE)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Move a request through its workflow; the tenant is notified of status changes."""
    request, changed = await MaintenanceService(db).update_status(
        request_id,
        current_user.user,
        new_status=data.status,
        notes=data.notes,
        scheduled_date=data.scheduled_date,
        priority=data.priority,
    )

    if changed and request.tenant is not None:
        status_label = request.status.value.replace("_", " ")
        await NotificationService(db).create(
            request.tenant_id,
            NotificationType.MAINTENANCE_UPDATE,
            "Maintenance request update",
            f"Your request \"{request.title}\" is now {status_label}.",
        )
        background_tasks.add_task(
            dispatch_quietly,
            dispatcher,
            NotificationType.MAINTENANCE_UPDATE,
            Recipient.from_user(request.tenant),
            {
                "requestId": str(request.id)[:8],
                "title": request.title,
                "status": status_label,
                "additionalInfo": request.notes or "",
                "propertyName": request.unit.property.name,
                "unitNumber": request.unit.unit_number,
            },
        )

    return request_to_response(request)
