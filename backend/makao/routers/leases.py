"""Leases router: allocation, listing and termination."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from makao.core.database import get_db
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, get_current_user, require_capability
from makao.models.enums import LeaseStatus, NotificationType, Role
from makao.models.lease import Lease
from makao.models.property import Property, Unit
from makao.routers.properties import get_managed_unit
from makao.schemas.lease import LeaseCreate, LeaseListResponse, LeaseResponse
from makao.services.lease_lifecycle import LeaseLifecycleService
from makao.services.notifications import (
    NotificationDispatcher,
    Recipient,
    dispatch_quietly,
    get_notification_dispatcher,
)

router = APIRouter(prefix="/leases", tags=["leases"])


def lease_to_response(lease: Lease) -> LeaseResponse:
    """Lease with denormalized unit/property/tenant fields (relations must be loaded)."""
    response = LeaseResponse.model_validate(lease)
    response.unit_number = lease.unit.unit_number
    response.property_id = lease.unit.property_id
    response.property_name = lease.unit.property.name
    response.tenant_name = lease.tenant.full_name if lease.tenant else None
    return response


@router.post("", response_model=LeaseResponse, status_code=status.HTTP_201_CREATED)
async def allocate_unit(
    data: LeaseCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.ALLOCATE_UNITS)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Allocate a vacant unit to a tenant."""
    await get_managed_unit(db, data.unit_id, current_user)

    lease = await LeaseLifecycleService(db).allocate(
        tenant_id=data.tenant_id,
        unit_id=data.unit_id,
        rent_amount=data.rent_amount,
        deposit_amount=data.deposit_amount,
        start_date=data.start_date,
        end_date=data.end_date,
        payment_day=data.payment_day,
        notes=data.notes,
        actor_id=current_user.db_user_id,
    )

    background_tasks.add_task(
        dispatch_quietly,
        dispatcher,
        NotificationType.WELCOME,
        Recipient.from_user(lease.tenant),
        {
            "propertyName": lease.unit.property.name,
            "unitNumber": lease.unit.unit_number,
        },
    )
    return lease_to_response(lease)


@router.get("", response_model=LeaseListResponse)
async def list_leases(
    lease_status: Optional[LeaseStatus] = None,
    unit_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Landlords see leases on their properties, admins all, tenants their own."""
    query = select(Lease).options(
        selectinload(Lease.unit).selectinload(Unit.property),
        selectinload(Lease.tenant),
    )
    count_query = select(func.count(Lease.id))

    if current_user.role == Role.TENANT:
        scope = [Lease.tenant_id == current_user.db_user_id]
    elif current_user.can(Capability.VIEW_ALL_PROPERTIES):
        scope = []
    else:
        query = query.join(Unit, Lease.unit_id == Unit.id).join(Property, Unit.property_id == Property.id)
        count_query = count_query.join(Unit, Lease.unit_id == Unit.id).join(
            Property, Unit.property_id == Property.id
        )
        scope = [Property.owner_id == current_user.db_user_id]

    if lease_status:
        scope.append(Lease.status == lease_status)
    if unit_id:
        scope.append(Lease.unit_id == unit_id)

    result = await db.execute(query.where(*scope).order_by(Lease.start_date.desc()))
    leases = result.scalars().all()
    total = (await db.execute(count_query.where(*scope))).scalar_one()

    return LeaseListResponse(leases=[lease_to_response(lease) for lease in leases], total=total)


async def get_visible_lease(
    db: AsyncSession,
    lease_id: UUID,
    current_user: AuthenticatedUser,
) -> Lease:
    lease = (
        await db.execute(
            select(Lease)
            .options(
                selectinload(Lease.unit).selectinload(Unit.property),
                selectinload(Lease.tenant),
            )
            .where(Lease.id == lease_id)
        )
    ).scalar_one_or_none()

    visible = lease is not None and (
        current_user.can(Capability.VIEW_ALL_PROPERTIES)
        or lease.tenant_id == current_user.db_user_id
        or (
            current_user.can(Capability.ALLOCATE_UNITS)
            and lease.unit.property.owner_id == current_user.db_user_id
        )
    )
    if not visible:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lease not found")
    return lease


@router.get("/{lease_id}", response_model=LeaseResponse)
async def get_lease(
    lease_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Get a lease by ID."""
    return lease_to_response(await get_visible_lease(db, lease_id, current_user))


@router.post("/{lease_id}/terminate", response_model=LeaseResponse)
async def terminate_lease(
    lease_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.ALLOCATE_UNITS)),
):
    """Terminate an active lease today; the unit becomes vacant."""
    await get_visible_lease(db, lease_id, current_user)
    lease = await LeaseLifecycleService(db).terminate(lease_id, actor_id=current_user.db_user_id)
    return lease_to_response(lease)
