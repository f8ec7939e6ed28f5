"""
Payment ledger: balance and next-due-date derivation, plus the payment
submission / recording / review workflow.

Payments are compared by calendar month of ``payment_date`` only. Any paid
payment in the current month settles the month regardless of amount.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from makao.core.errors import ConflictError, InvalidStateError, NotFoundError
from makao.core.permissions import Capability, has_capability
from makao.models.enums import (
    AuditAction,
    LeaseStatus,
    PAID_PAYMENT_STATUSES,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Role,
)
from makao.models.lease import Lease
from makao.models.payment import Payment
from makao.models.property import Property, Unit
from makao.models.user import User
from makao.services.audit import AuditService
from makao.services.dates import add_months, clamp_day, month_key, same_month

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_DAY = 1


class LeaseTerms(Protocol):
    rent_amount: Decimal
    payment_day: Optional[int]


class PaymentRecord(Protocol):
    amount: Decimal
    payment_date: date
    status: PaymentStatus


@dataclass(frozen=True)
class BalanceSummary:
    """Result of a balance computation.

    ``has_lease`` is False for the "not allocated" sentinel: a tenant
    without an active lease is a normal state, not an error.
    """

    has_lease: bool
    current_balance: Decimal
    next_payment_due: Optional[date]
    rent_amount: Decimal
    total_paid: Decimal
    current_month_paid: bool

    @classmethod
    def not_allocated(cls) -> "BalanceSummary":
        zero = Decimal("0")
        return cls(
            has_lease=False,
            current_balance=zero,
            next_payment_due=None,
            rent_amount=zero,
            total_paid=zero,
            current_month_paid=False,
        )


def is_paid(payment: PaymentRecord) -> bool:
    return payment.status in PAID_PAYMENT_STATUSES


def next_due_date(payment_day: Optional[int], today: date, current_month_paid: bool) -> date:
    """Next date rent is due.

    The candidate is ``payment_day`` of the current month, or of next month
    once the current month is paid; a candidate already in the past moves
    forward one month. The day is clamped to the target month's length.
    """
    day = payment_day or DEFAULT_PAYMENT_DAY
    candidate = clamp_day(today.year, today.month, day)
    if current_month_paid:
        candidate = add_months(candidate, 1, day=day)
    if candidate < today:
        candidate = add_months(candidate, 1, day=day)
    return candidate


def compute_balance(
    lease: LeaseTerms,
    payments: Iterable[PaymentRecord],
    today: Optional[date] = None,
) -> BalanceSummary:
    """Derive the current balance and next due date for a lease."""
    today = today or date.today()
    paid = [p for p in payments if is_paid(p)]

    current_month_payment = next(
        (p for p in paid if same_month(p.payment_date, today)),
        None,
    )
    rent_amount = Decimal(lease.rent_amount)
    current_balance = Decimal("0") if current_month_payment else rent_amount

    return BalanceSummary(
        has_lease=True,
        current_balance=current_balance,
        next_payment_due=next_due_date(lease.payment_day, today, current_month_payment is not None),
        rent_amount=rent_amount,
        total_paid=sum((Decimal(p.amount) for p in paid), Decimal("0")),
        current_month_paid=current_month_payment is not None,
    )


class TenantLedgerService:
    """Read side of the ledger for a single tenant."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_lease_for_tenant(self, tenant_id: UUID) -> Optional[Lease]:
        result = await self.db.execute(
            select(Lease)
            .options(
                selectinload(Lease.unit).selectinload(Unit.property),
                selectinload(Lease.tenant),
            )
            .where(Lease.tenant_id == tenant_id, Lease.status == LeaseStatus.ACTIVE)
            .order_by(Lease.start_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def payments_for_lease(self, lease_id: UUID) -> list[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.lease_id == lease_id)
            .order_by(Payment.payment_date.desc())
        )
        return list(result.scalars().all())

    async def summary_for_tenant(
        self,
        tenant_id: UUID,
        today: Optional[date] = None,
    ) -> tuple[Optional[Lease], BalanceSummary]:
        """Balance summary for the tenant's active lease, or the sentinel."""
        lease = await self.get_active_lease_for_tenant(tenant_id)
        if lease is None:
            return None, BalanceSummary.not_allocated()
        payments = await self.payments_for_lease(lease.id)
        return lease, compute_balance(lease, payments, today=today)


class PaymentService(TenantLedgerService):
    """Payment workflows over the relational store."""

    def __init__(self, db: AsyncSession):
        super().__init__(db)
        self.audit = AuditService(db)

    def _scoped(self, query, user: User):
        """Restrict a Payment query to what ``user`` may see."""
        if has_capability(user.role, Capability.VIEW_ALL_PROPERTIES):
            return query
        if user.role == Role.LANDLORD:
            return (
                query.join(Lease, Payment.lease_id == Lease.id)
                .join(Unit, Lease.unit_id == Unit.id)
                .join(Property, Unit.property_id == Property.id)
                .where(Property.owner_id == user.id)
            )
        return query.where(Payment.user_id == user.id)

    async def get_visible(self, payment_id: UUID, user: User) -> Payment:
        query = self._scoped(
            select(Payment)
            .options(
                selectinload(Payment.payer),
                selectinload(Payment.lease).selectinload(Lease.unit).selectinload(Unit.property),
            )
            .where(Payment.id == payment_id),
            user,
        )
        payment = (await self.db.execute(query)).scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    async def history(
        self,
        user: User,
        status: Optional[PaymentStatus] = None,
        payment_type: Optional[PaymentType] = None,
        month: Optional[str] = None,
        lease_id: Optional[UUID] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Payment], int]:
        """Paginated payment history plus total count under the same filters."""
        filters = []
        if status:
            filters.append(Payment.status == status)
        if payment_type:
            filters.append(Payment.payment_type == payment_type)
        if month:
            filters.append(Payment.month == month)
        if lease_id:
            filters.append(Payment.lease_id == lease_id)

        query = self._scoped(select(Payment), user).where(*filters)
        count_query = self._scoped(select(func.count(Payment.id)), user).where(*filters)

        result = await self.db.execute(
            query.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        total = (await self.db.execute(count_query)).scalar_one()
        return list(result.scalars().all()), total

    # ----------------------------------------------------------------- writes

    async def get_lease(self, lease_id: UUID) -> Lease:
        result = await self.db.execute(
            select(Lease)
            .options(
                selectinload(Lease.unit).selectinload(Unit.property).selectinload(Property.owner),
                selectinload(Lease.tenant),
            )
            .where(Lease.id == lease_id)
        )
        lease = result.scalar_one_or_none()
        if lease is None:
            raise NotFoundError("Lease not found")
        return lease

    async def _insert(self, payment: Payment, action: AuditAction, actor_id: UUID) -> Payment:
        self.db.add(payment)
        try:
            await self.db.flush()
            await self.audit.log(
                action=action,
                resource_type="payment",
                resource_id=payment.id,
                user_id=actor_id,
                details={"lease_id": str(payment.lease_id), "amount": str(payment.amount)},
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("A payment with this reference already exists for the lease")
        await self.db.refresh(payment, ["payer"])
        return payment

    async def submit(
        self,
        tenant: User,
        lease_id: UUID,
        amount: Decimal,
        payment_date: date,
        payment_method: PaymentMethod,
        reference_number: str,
        payment_type: PaymentType = PaymentType.RENT,
        month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Tenant submission; stays pending until a landlord reviews it."""
        lease = await self.get_lease(lease_id)
        if lease.tenant_id != tenant.id:
            raise NotFoundError("Lease not found")
        if lease.status in (LeaseStatus.TERMINATED, LeaseStatus.EXPIRED):
            raise InvalidStateError(f"Cannot pay against a {lease.status.value} lease")

        payment = Payment(
            lease_id=lease.id,
            user_id=tenant.id,
            amount=amount,
            payment_date=payment_date,
            payment_method=payment_method,
            payment_type=payment_type,
            reference_number=reference_number,
            month=month or month_key(payment_date),
            status=PaymentStatus.PENDING,
            notes=notes,
        )
        payment = await self._insert(payment, AuditAction.PAYMENT_SUBMITTED, tenant.id)
        logger.info("Payment %s submitted for lease %s", payment.id, lease.id)
        return payment

    async def record(
        self,
        recorder: User,
        lease_id: UUID,
        amount: Decimal,
        payment_date: date,
        payment_method: PaymentMethod,
        reference_number: str,
        payment_type: PaymentType = PaymentType.RENT,
        month: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        """Landlord/admin records a payment received out of band; it is final."""
        lease = await self.get_lease(lease_id)
        self._ensure_manages(recorder, lease)
        if lease.status in (LeaseStatus.TERMINATED, LeaseStatus.EXPIRED):
            raise InvalidStateError(f"Cannot record a payment against a {lease.status.value} lease")

        payment = Payment(
            lease_id=lease.id,
            user_id=lease.tenant_id,
            amount=amount,
            payment_date=payment_date,
            payment_method=payment_method,
            payment_type=payment_type,
            reference_number=reference_number,
            month=month or month_key(payment_date),
            status=PaymentStatus.COMPLETED,
            verified_at=datetime.utcnow(),
            verified_by_id=recorder.id,
            notes=notes,
        )
        payment = await self._insert(payment, AuditAction.PAYMENT_RECORDED, recorder.id)
        logger.info("Payment %s recorded by %s for lease %s", payment.id, recorder.id, lease.id)
        return payment

    async def review(
        self,
        payment_id: UUID,
        reviewer: User,
        approve: bool,
        notes: Optional[str] = None,
    ) -> Payment:
        """Move a pending payment to verified or rejected."""
        payment = await self.get_visible(payment_id, reviewer)
        if payment.status != PaymentStatus.PENDING:
            raise InvalidStateError(
                f"Payment is already {payment.status.value}; only pending payments can be reviewed"
            )

        payment.status = PaymentStatus.VERIFIED if approve else PaymentStatus.REJECTED
        payment.verification_notes = notes
        payment.verified_at = datetime.utcnow() if approve else None
        payment.verified_by_id = reviewer.id if approve else None

        await self.audit.log_payment_reviewed(payment.id, approve, reviewer.id, notes)
        await self.db.commit()
        logger.info("Payment %s %s by %s", payment.id, payment.status.value, reviewer.id)
        return payment

    def _ensure_manages(self, user: User, lease: Lease) -> None:
        if has_capability(user.role, Capability.VIEW_ALL_PROPERTIES):
            return
        if lease.unit.property.owner_id != user.id:
            raise NotFoundError("Lease not found")
