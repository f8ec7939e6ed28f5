"""Payment and balance schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from makao.models.enums import PaymentMethod, PaymentStatus, PaymentType
from makao.schemas.base import BaseSchema, IDMixin, Pagination, TimestampMixin

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class PaymentCreate(BaseSchema):
    """Tenant payment submission, or a landlord-recorded payment."""

    lease_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_date: date
    payment_method: PaymentMethod
    payment_type: PaymentType = PaymentType.RENT
    reference_number: str = Field(..., min_length=1, max_length=100)
    month: Optional[str] = Field(None, pattern=MONTH_PATTERN)
    notes: Optional[str] = None


class PaymentReview(BaseSchema):
    """Verify or reject a pending payment."""

    id: UUID
    action: Literal["verify", "reject"]
    notes: Optional[str] = None


class PaymentResponse(BaseSchema, IDMixin, TimestampMixin):
    """Payment response."""

    lease_id: UUID
    user_id: UUID
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    payment_type: PaymentType
    reference_number: str
    month: Optional[str] = None
    status: PaymentStatus
    verification_notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by_id: Optional[UUID] = None
    notes: Optional[str] = None


class PaymentListResponse(BaseSchema):
    payments: list[PaymentResponse]
    pagination: Pagination


class BalanceSummaryResponse(BaseSchema):
    """Balance for the tenant's active lease; has_lease is false when not allocated."""

    has_lease: bool
    current_balance: Decimal
    next_payment_due: Optional[date] = None
    rent_amount: Decimal
    total_paid: Decimal
    current_month_paid: bool
