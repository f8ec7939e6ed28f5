"""Maintenance requests and their status transitions."""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from makao.core.errors import InvalidStateError, NotFoundError, PermissionDeniedError
from makao.core.permissions import Capability, has_capability
from makao.models.enums import (
    AuditAction,
    LeaseStatus,
    MaintenancePriority,
    MaintenanceStatus,
    Role,
)
from makao.models.lease import Lease
from makao.models.maintenance import MaintenanceRequest
from makao.models.property import Property, Unit
from makao.models.user import User
from makao.services.audit import AuditService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[MaintenanceStatus, frozenset[MaintenanceStatus]] = {
    MaintenanceStatus.PENDING: frozenset({MaintenanceStatus.IN_PROGRESS, MaintenanceStatus.CANCELLED}),
    MaintenanceStatus.IN_PROGRESS: frozenset({MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED}),
    MaintenanceStatus.COMPLETED: frozenset(),
    MaintenanceStatus.CANCELLED: frozenset(),
}


def can_transition(current: MaintenanceStatus, new: MaintenanceStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


class MaintenanceService:
    """Service for maintenance requests."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    def _with_relations(self):
        return select(MaintenanceRequest).options(
            selectinload(MaintenanceRequest.unit).selectinload(Unit.property),
            selectinload(MaintenanceRequest.tenant),
        )

    def _scoped(self, query, user: User):
        if has_capability(user.role, Capability.VIEW_ALL_PROPERTIES):
            return query
        if user.role == Role.LANDLORD:
            return (
                query.join(Unit, MaintenanceRequest.unit_id == Unit.id)
                .join(Property, Unit.property_id == Property.id)
                .where(Property.owner_id == user.id)
            )
        return query.where(MaintenanceRequest.tenant_id == user.id)

    async def get_visible(self, request_id: UUID, user: User) -> MaintenanceRequest:
        query = self._scoped(self._with_relations().where(MaintenanceRequest.id == request_id), user)
        request = (await self.db.execute(query)).scalar_one_or_none()
        if request is None:
            raise NotFoundError("Maintenance request not found")
        return request

    async def list_requests(
        self,
        user: User,
        status: Optional[MaintenanceStatus] = None,
        priority: Optional[MaintenancePriority] = None,
        unit_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[MaintenanceRequest], int]:
        filters = []
        if status:
            filters.append(MaintenanceRequest.status == status)
        if priority:
            filters.append(MaintenanceRequest.priority == priority)
        if unit_id:
            filters.append(MaintenanceRequest.unit_id == unit_id)

        query = self._scoped(self._with_relations(), user).where(*filters)
        count_query = self._scoped(select(func.count(MaintenanceRequest.id)), user).where(*filters)

        result = await self.db.execute(
            query.order_by(MaintenanceRequest.created_at.desc()).offset(offset).limit(limit)
        )
        total = (await self.db.execute(count_query)).scalar_one()
        return list(result.scalars().all()), total

    async def create(
        self,
        unit_id: UUID,
        requester: User,
        title: str,
        description: str,
        priority: MaintenancePriority = MaintenancePriority.MEDIUM,
    ) -> MaintenanceRequest:
        """File a request. Tenants may only file against their leased unit."""
        unit = await self.db.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("Unit not found")

        tenant_id: Optional[UUID] = None
        if requester.role == Role.TENANT:
            active = await self.db.execute(
                select(Lease.id).where(
                    Lease.unit_id == unit_id,
                    Lease.tenant_id == requester.id,
                    Lease.status == LeaseStatus.ACTIVE,
                )
            )
            if active.first() is None:
                raise PermissionDeniedError("You can only submit requests for your leased unit")
            tenant_id = requester.id
        elif not has_capability(requester.role, Capability.VIEW_ALL_PROPERTIES):
            property_ = await self.db.get(Property, unit.property_id)
            if property_ is None or property_.owner_id != requester.id:
                raise NotFoundError("Unit not found")

        request = MaintenanceRequest(
            unit_id=unit_id,
            tenant_id=tenant_id,
            title=title,
            description=description,
            priority=priority,
            status=MaintenanceStatus.PENDING,
        )
        self.db.add(request)
        await self.db.commit()
        logger.info("Maintenance request %s filed for unit %s", request.id, unit_id)
        return await self.get_visible(request.id, requester)

    async def update_status(
        self,
        request_id: UUID,
        actor: User,
        new_status: Optional[MaintenanceStatus] = None,
        notes: Optional[str] = None,
        scheduled_date: Optional[datetime] = None,
        priority: Optional[MaintenancePriority] = None,
    ) -> tuple[MaintenanceRequest, bool]:
        """Apply a status change (and optional notes/schedule/priority).

        Returns the request and whether its status changed. Setting the
        current status again is a no-op for the status.
        """
        request = await self.get_visible(request_id, actor)
        changed = False

        if new_status is not None and new_status != request.status:
            if not can_transition(request.status, new_status):
                raise InvalidStateError(
                    f"Cannot move maintenance request from {request.status.value} to {new_status.value}"
                )
            old_status = request.status
            request.status = new_status
            if new_status == MaintenanceStatus.COMPLETED:
                request.completed_at = datetime.utcnow()
            await self.audit.log(
                action=AuditAction.MAINTENANCE_STATUS_CHANGED,
                resource_type="maintenance_request",
                resource_id=request.id,
                user_id=actor.id,
                details={"from": old_status.value, "to": new_status.value},
            )
            changed = True

        if notes is not None:
            request.notes = notes
        if scheduled_date is not None:
            request.scheduled_date = scheduled_date
        if priority is not None:
            request.priority = priority

        await self.db.commit()
        if changed:
            logger.info("Maintenance request %s is now %s", request.id, request.status.value)
        return request, changed
