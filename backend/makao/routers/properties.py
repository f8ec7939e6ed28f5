"""Properties and Units router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.errors import ConflictError, InvalidStateError, ValidationError
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, require_capability
from makao.models.enums import LeaseStatus, UnitStatus
from makao.models.lease import Lease
from makao.models.property import Property, Unit
from makao.schemas.property import (
    PropertyCreate,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
    UnitCreate,
    UnitResponse,
    UnitUpdate,
)

router = APIRouter(prefix="/properties", tags=["properties"])
units_router = APIRouter(prefix="/units", tags=["properties"])

manager = require_capability(Capability.MANAGE_PROPERTIES)


async def get_managed_property(
    db: AsyncSession,
    property_id: UUID,
    current_user: AuthenticatedUser,
) -> Property:
    """Property owned by the caller (any property for admins), or 404."""
    query = select(Property).where(Property.id == property_id)
    if not current_user.can(Capability.VIEW_ALL_PROPERTIES):
        query = query.where(Property.owner_id == current_user.db_user_id)
    prop = (await db.execute(query)).scalar_one_or_none()

    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


async def get_managed_unit(
    db: AsyncSession,
    unit_id: UUID,
    current_user: AuthenticatedUser,
) -> Unit:
    query = select(Unit).join(Property, Unit.property_id == Property.id).where(Unit.id == unit_id)
    if not current_user.can(Capability.VIEW_ALL_PROPERTIES):
        query = query.where(Property.owner_id == current_user.db_user_id)
    unit = (await db.execute(query)).scalar_one_or_none()

    if not unit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unit not found")
    return unit


async def _has_active_lease(db: AsyncSession, unit_id: UUID) -> bool:
    result = await db.execute(
        select(Lease.id).where(Lease.unit_id == unit_id, Lease.status == LeaseStatus.ACTIVE)
    )
    return result.first() is not None


async def _unit_number_taken(db: AsyncSession, property_id: UUID, unit_number: str) -> bool:
    result = await db.execute(
        select(Unit.id).where(Unit.property_id == property_id, Unit.unit_number == unit_number)
    )
    return result.first() is not None


async def _refresh_unit_count(db: AsyncSession, prop: Property) -> None:
    count = await db.execute(select(func.count(Unit.id)).where(Unit.property_id == prop.id))
    prop.total_units = count.scalar() or 0


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    data: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Create a new property owned by the caller."""
    prop = Property(
        owner_id=current_user.db_user_id,
        name=data.name,
        address=data.address,
        property_type=data.property_type,
        description=data.description,
        total_units=0,
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


@router.get("", response_model=PropertyListResponse)
async def list_properties(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """List the caller's properties (all properties for admins)."""
    query = select(Property).order_by(Property.name)
    if not current_user.can(Capability.VIEW_ALL_PROPERTIES):
        query = query.where(Property.owner_id == current_user.db_user_id)
    properties = list((await db.execute(query)).scalars().all())

    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(p) for p in properties],
        total=len(properties),
    )


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Get a property by ID."""
    return await get_managed_property(db, property_id, current_user)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: UUID,
    data: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Update a property."""
    prop = await get_managed_property(db, property_id, current_user)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(prop, field, value)

    await db.commit()
    await db.refresh(prop)
    return prop


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Delete a property and its units. Refused while any unit is leased."""
    prop = await get_managed_property(db, property_id, current_user)

    leased = await db.execute(
        select(func.count(Lease.id))
        .join(Unit, Lease.unit_id == Unit.id)
        .where(Unit.property_id == prop.id, Lease.status == LeaseStatus.ACTIVE)
    )
    if leased.scalar():
        raise InvalidStateError("Property has units with active leases")

    await db.delete(prop)
    await db.commit()


# ============================================
# Units
# ============================================

@router.post("/{property_id}/units", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_unit(
    property_id: UUID,
    data: UnitCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Add a vacant unit to a property."""
    prop = await get_managed_property(db, property_id, current_user)

    unit = Unit(
        property_id=prop.id,
        status=UnitStatus.VACANT,
        **data.model_dump(),
    )
    db.add(unit)
    try:
        await db.flush()
        await _refresh_unit_count(db, prop)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Unit {data.unit_number} already exists in this property")

    await db.refresh(unit)
    return unit


@router.get("/{property_id}/units", response_model=List[UnitResponse])
async def list_units(
    property_id: UUID,
    unit_status: UnitStatus | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """List units for a property, optionally filtered by status."""
    await get_managed_property(db, property_id, current_user)

    query = select(Unit).where(Unit.property_id == property_id).order_by(Unit.unit_number)
    if unit_status:
        query = query.where(Unit.status == unit_status)
    result = await db.execute(query)
    return result.scalars().all()


@units_router.patch("/{unit_id}", response_model=UnitResponse)
async def update_unit(
    unit_id: UUID,
    data: UnitUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Update a unit. Occupancy itself is changed only by allocation and termination."""
    unit = await get_managed_unit(db, unit_id, current_user)
    update_data = data.model_dump(exclude_unset=True)

    new_status = update_data.get("status")
    if new_status is not None and new_status != unit.status:
        if new_status == UnitStatus.OCCUPIED:
            raise ValidationError("Units become occupied through lease allocation")
        if unit.status == UnitStatus.OCCUPIED:
            raise InvalidStateError("Terminate the active lease before changing an occupied unit's status")

    new_number = update_data.get("unit_number")
    renumbered = new_number is not None and new_number != unit.unit_number
    if renumbered and await _unit_number_taken(db, unit.property_id, new_number):
        raise ConflictError(f"Unit {new_number} already exists in this property")

    for field, value in update_data.items():
        setattr(unit, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if not renumbered:
            raise
        raise ConflictError(f"Unit {new_number} already exists in this property")

    await db.refresh(unit)
    return unit


@units_router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unit(
    unit_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(manager),
):
    """Delete a unit that has no active lease."""
    unit = await get_managed_unit(db, unit_id, current_user)
    if await _has_active_lease(db, unit.id):
        raise InvalidStateError("Unit has an active lease")

    prop = await db.get(Property, unit.property_id)
    await db.delete(unit)
    await db.flush()
    await _refresh_unit_count(db, prop)
    await db.commit()
