"""Tenant-facing dashboard."""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.security import AuthenticatedUser, get_current_user
from makao.routers.leases import lease_to_response
from makao.schemas.dashboard import TenantDashboardResponse
from makao.schemas.payment import BalanceSummaryResponse, PaymentResponse
from makao.schemas.property import PropertyResponse, UnitResponse
from makao.services.ledger import TenantLedgerService

router = APIRouter(prefix="/tenant", tags=["tenant"])

RECENT_PAYMENTS = 5


@router.get("/dashboard", response_model=TenantDashboardResponse)
async def tenant_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Lease, unit, balance and recent payments for the caller.

    A caller without an active lease gets has_lease=false, not an error.
    """
    ledger = TenantLedgerService(db)
    lease, summary = await ledger.summary_for_tenant(current_user.db_user_id)
    balance = BalanceSummaryResponse(**asdict(summary))

    if lease is None:
        return TenantDashboardResponse(balance=balance)
    payments = await ledger.payments_for_lease(lease.id)
    return TenantDashboardResponse(
        lease=lease_to_response(lease),
        unit=UnitResponse.model_validate(lease.unit),
        property=PropertyResponse.model_validate(lease.unit.property),
        balance=balance,
        recent_payments=[PaymentResponse.model_validate(p) for p in payments[:RECENT_PAYMENTS]],
    )
