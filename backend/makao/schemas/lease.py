"""Lease schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from makao.models.enums import LeaseStatus
from makao.schemas.base import BaseSchema, IDMixin, TimestampMixin


class LeaseCreate(BaseSchema):
    """Allocate a unit to a tenant."""

    unit_id: UUID
    tenant_id: UUID

    start_date: date
    end_date: date

    rent_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    payment_day: int = Field(default=1, ge=1, le=28)

    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self):
        """End date must be after start date."""
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class LeaseResponse(BaseSchema, IDMixin, TimestampMixin):
    """Lease response."""

    unit_id: UUID
    tenant_id: UUID
    status: LeaseStatus
    start_date: date
    end_date: date
    terminated_at: Optional[datetime] = None
    rent_amount: Decimal
    deposit_amount: Decimal
    payment_day: int
    notes: Optional[str] = None

    # Denormalized fields for list views
    unit_number: Optional[str] = None
    property_id: Optional[UUID] = None
    property_name: Optional[str] = None
    tenant_name: Optional[str] = None


class LeaseListResponse(BaseSchema):
    """Response for lease list endpoint."""

    leases: list[LeaseResponse]
    total: int
