"""Dashboard router - aggregate stats for the landlord overview."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, require_capability
from makao.models.enums import (
    LeaseStatus,
    MaintenanceStatus,
    PAID_PAYMENT_STATUSES,
    PaymentStatus,
    UnitStatus,
)
from makao.models.lease import Lease
from makao.models.maintenance import MaintenanceRequest
from makao.models.payment import Payment
from makao.models.property import Property, Unit
from makao.schemas.dashboard import DashboardStats
from makao.services.dates import add_months

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

OPEN_MAINTENANCE = (MaintenanceStatus.PENDING, MaintenanceStatus.IN_PROGRESS)


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.MANAGE_PROPERTIES)),
):
    """Aggregate statistics over the caller's properties (all properties for admins).

    Returns:
    - Property and unit counts, units by status, occupancy rate
    - Active leases and payments awaiting verification
    - Amount collected this month
    - Open maintenance requests by status
    """
    owner_scope = []
    if not current_user.can(Capability.VIEW_ALL_PROPERTIES):
        owner_scope.append(Property.owner_id == current_user.db_user_id)

    today = date.today()
    month_start = today.replace(day=1)
    next_month_start = add_months(month_start, 1)

    total_properties = (
        await db.execute(select(func.count(Property.id)).where(*owner_scope))
    ).scalar_one()

    unit_rows = await db.execute(
        select(Unit.status, func.count(Unit.id))
        .join(Property, Unit.property_id == Property.id)
        .where(*owner_scope)
        .group_by(Unit.status)
    )
    units_by_status = {s.value: 0 for s in UnitStatus}
    for unit_status, count in unit_rows.all():
        units_by_status[unit_status.value] = count
    total_units = sum(units_by_status.values())

    active_leases = (
        await db.execute(
            select(func.count(Lease.id))
            .join(Unit, Lease.unit_id == Unit.id)
            .join(Property, Unit.property_id == Property.id)
            .where(Lease.status == LeaseStatus.ACTIVE, *owner_scope)
        )
    ).scalar_one()

    def payments_query(*columns):
        return (
            select(*columns)
            .join(Lease, Payment.lease_id == Lease.id)
            .join(Unit, Lease.unit_id == Unit.id)
            .join(Property, Unit.property_id == Property.id)
            .where(*owner_scope)
        )

    pending_payments = (
        await db.execute(
            payments_query(func.count(Payment.id)).where(Payment.status == PaymentStatus.PENDING)
        )
    ).scalar_one()

    collected = (
        await db.execute(
            payments_query(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.status.in_(PAID_PAYMENT_STATUSES),
                Payment.payment_date >= month_start,
                Payment.payment_date < next_month_start,
            )
        )
    ).scalar_one()

    maintenance_rows = await db.execute(
        select(MaintenanceRequest.status, func.count(MaintenanceRequest.id))
        .join(Unit, MaintenanceRequest.unit_id == Unit.id)
        .join(Property, Unit.property_id == Property.id)
        .where(MaintenanceRequest.status.in_(OPEN_MAINTENANCE), *owner_scope)
        .group_by(MaintenanceRequest.status)
    )
    open_maintenance = {s.value: 0 for s in OPEN_MAINTENANCE}
    for request_status, count in maintenance_rows.all():
        open_maintenance[request_status.value] = count

    occupied = units_by_status[UnitStatus.OCCUPIED.value]
    return DashboardStats(
        total_properties=total_properties,
        total_units=total_units,
        units_by_status=units_by_status,
        occupancy_rate=round(occupied / total_units * 100, 1) if total_units else 0.0,
        active_leases=active_leases,
        pending_payments=pending_payments,
        collected_this_month=Decimal(str(collected)),
        open_maintenance_by_status=open_maintenance,
    )
