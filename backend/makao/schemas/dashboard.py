"""Dashboard schemas."""

from decimal import Decimal
from typing import Optional

from makao.schemas.base import BaseSchema
from makao.schemas.lease import LeaseResponse
from makao.schemas.payment import BalanceSummaryResponse, PaymentResponse
from makao.schemas.property import PropertyResponse, UnitResponse


class TenantDashboardResponse(BaseSchema):
    """Tenant overview. lease/unit/property are null when no unit is allocated."""

    lease: Optional[LeaseResponse] = None
    unit: Optional[UnitResponse] = None
    property: Optional[PropertyResponse] = None
    balance: BalanceSummaryResponse
    recent_payments: list[PaymentResponse] = []


class DashboardStats(BaseSchema):
    """Landlord overview."""

    total_properties: int
    total_units: int
    units_by_status: dict[str, int]
    occupancy_rate: float
    active_leases: int
    pending_payments: int
    collected_this_month: Decimal
    open_maintenance_by_status: dict[str, int]
