"""Maintenance request schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from makao.models.enums import MaintenancePriority, MaintenanceStatus
from makao.schemas.base import BaseSchema, IDMixin, Pagination, TimestampMixin


class MaintenanceRequestCreate(BaseSchema):
    """Create maintenance request."""

    unit_id: UUID
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=3)
    priority: MaintenancePriority = MaintenancePriority.MEDIUM


class MaintenanceRequestUpdate(BaseSchema):
    """Update maintenance request status and details."""

    status: Optional[MaintenanceStatus] = None
    priority: Optional[MaintenancePriority] = None
    notes: Optional[str] = None
    scheduled_date: Optional[datetime] = None


class MaintenanceRequestResponse(BaseSchema, IDMixin, TimestampMixin):
    """Maintenance request response."""

    unit_id: UUID
    tenant_id: Optional[UUID] = None
    title: str
    description: str
    status: MaintenanceStatus
    priority: MaintenancePriority
    scheduled_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    unit_number: Optional[str] = None
    property_name: Optional[str] = None


class MaintenanceListResponse(BaseSchema):
    requests: list[MaintenanceRequestResponse]
    pagination: Pagination
