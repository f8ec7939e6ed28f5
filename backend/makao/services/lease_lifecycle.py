"""
Lease lifecycle: allocating a vacant unit to a tenant and ending leases.

Unit occupancy and lease status always change together in one transaction,
so a unit is occupied exactly when it has an active lease.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from makao.core.errors import ConflictError, InvalidStateError, NotFoundError
from makao.models.calendar import CalendarEvent
from makao.models.enums import AuditAction, CalendarEventType, LeaseStatus, UnitStatus
from makao.models.lease import Lease
from makao.models.property import Unit
from makao.models.user import User
from makao.services.audit import AuditService

logger = logging.getLogger(__name__)


class LeaseLifecycleService:
    """Allocate, terminate and expire leases."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _lock_unit(self, unit_id: UUID) -> Optional[Unit]:
        result = await self.db.execute(
            select(Unit)
            .options(selectinload(Unit.property))
            .where(Unit.id == unit_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _active_lease_for_unit(self, unit_id: UUID) -> Optional[Lease]:
        result = await self.db.execute(
            select(Lease).where(Lease.unit_id == unit_id, Lease.status == LeaseStatus.ACTIVE)
        )
        return result.scalars().first()

    async def get(self, lease_id: UUID) -> Lease:
        result = await self.db.execute(
            select(Lease)
            .options(
                selectinload(Lease.unit).selectinload(Unit.property),
                selectinload(Lease.tenant),
            )
            .where(Lease.id == lease_id)
        )
        lease = result.scalar_one_or_none()
        if lease is None:
            raise NotFoundError("Lease not found")
        return lease

    async def allocate(
        self,
        tenant_id: UUID,
        unit_id: UUID,
        rent_amount: Decimal,
        deposit_amount: Decimal,
        start_date: date,
        end_date: date,
        payment_day: int = 1,
        notes: Optional[str] = None,
        actor_id: Optional[UUID] = None,
    ) -> Lease:
        """Create an active lease and mark the unit occupied.

        Raises:
            NotFoundError: unknown unit, or unknown/inactive tenant
            ConflictError: the unit already has an active lease
            InvalidStateError: the unit is not vacant
        """
        try:
            unit = await self._lock_unit(unit_id)
            if unit is None:
                raise NotFoundError("Unit not found")

            tenant = await self.db.get(User, tenant_id)
            if tenant is None or not tenant.is_active:
                raise NotFoundError("Tenant not found")

            if await self._active_lease_for_unit(unit.id) is not None:
                raise ConflictError("Unit already has an active lease")

            if unit.status != UnitStatus.VACANT:
                raise InvalidStateError(f"Unit is not vacant (status: {unit.status.value})")

            lease = Lease(
                unit_id=unit.id,
                tenant_id=tenant.id,
                status=LeaseStatus.ACTIVE,
                start_date=start_date,
                end_date=end_date,
                rent_amount=rent_amount,
                deposit_amount=deposit_amount,
                payment_day=payment_day,
                notes=notes,
            )
            self.db.add(lease)
            unit.status = UnitStatus.OCCUPIED
            await self.db.flush()

            await self.audit.log_lease_allocated(lease.id, unit.id, tenant.id, user_id=actor_id)
            self._add_lease_events(lease, unit, tenant)

            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Unit already has an active lease")
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Allocated unit %s to tenant %s (lease %s)", unit_id, tenant_id, lease.id)
        return await self.get(lease.id)

    def _add_lease_events(self, lease: Lease, unit: Unit, tenant: User) -> None:
        label = f"{unit.property.name} - Unit {unit.unit_number}"
        for event_type, day, title in (
            (CalendarEventType.LEASE_START, lease.start_date, f"Lease start: {label}"),
            (CalendarEventType.LEASE_END, lease.end_date, f"Lease end: {label}"),
        ):
            self.db.add(CalendarEvent(
                owner_id=unit.property.owner_id,
                title=title,
                description=f"Tenant: {tenant.full_name}",
                start_date=datetime.combine(day, time.min),
                end_date=datetime.combine(day, time.max),
                all_day=True,
                event_type=event_type,
                related_entity_type="lease",
                related_entity_id=lease.id,
            ))

    async def terminate(
        self,
        lease_id: UUID,
        today: Optional[date] = None,
        actor_id: Optional[UUID] = None,
    ) -> Lease:
        """End an active lease today and free its unit."""
        today = today or date.today()
        try:
            lease = await self.get(lease_id)
            if lease.status != LeaseStatus.ACTIVE:
                raise InvalidStateError(
                    f"Only active leases can be terminated (status: {lease.status.value})"
                )

            lease.status = LeaseStatus.TERMINATED
            lease.end_date = today
            lease.terminated_at = datetime.utcnow()
            lease.unit.status = UnitStatus.VACANT

            await self.audit.log_lease_terminated(lease.id, lease.unit_id, user_id=actor_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Terminated lease %s, unit %s is vacant", lease.id, lease.unit_id)
        return lease

    async def expire_overdue(self, today: Optional[date] = None) -> list[Lease]:
        """Expire active leases whose end date has passed and free their units."""
        today = today or date.today()
        result = await self.db.execute(
            select(Lease)
            .options(selectinload(Lease.unit))
            .where(Lease.status == LeaseStatus.ACTIVE, Lease.end_date < today)
        )
        leases = list(result.scalars().all())
        if not leases:
            return []

        try:
            for lease in leases:
                lease.status = LeaseStatus.EXPIRED
                lease.unit.status = UnitStatus.VACANT
                await self.audit.log(
                    action=AuditAction.LEASE_EXPIRED,
                    resource_type="lease",
                    resource_id=lease.id,
                    details={"unit_id": str(lease.unit_id), "end_date": lease.end_date.isoformat()},
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Expired %d overdue lease(s)", len(leases))
        return leases

    async def check_consistency(self) -> list[Unit]:
        """Units whose status disagrees with whether they have an active lease."""
        has_active = exists().where(
            and_(Lease.unit_id == Unit.id, Lease.status == LeaseStatus.ACTIVE)
        )
        result = await self.db.execute(
            select(Unit).where(
                ((Unit.status == UnitStatus.OCCUPIED) & ~has_active)
                | ((Unit.status != UnitStatus.OCCUPIED) & has_active)
            )
        )
        return list(result.scalars().all())
