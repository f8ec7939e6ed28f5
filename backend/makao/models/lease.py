"""Lease model."""

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Date, ForeignKey, Text, Integer, Numeric, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from makao.core.database import Base
from makao.models.enums import LeaseStatus, db_enum

if TYPE_CHECKING:
    from makao.models.property import Unit
    from makao.models.user import User
    from makao.models.payment import Payment


class Lease(Base):
    """A lease agreement between a tenant and a unit."""

    __tablename__ = "leases"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[LeaseStatus] = mapped_column(
        db_enum(LeaseStatus, "lease_status"),
        default=LeaseStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Dates
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    terminated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Money (whole currency units)
    rent_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # Day of month rent is due
    payment_day: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    unit: Mapped["Unit"] = relationship("Unit", back_populates="leases")
    tenant: Mapped["User"] = relationship("User", back_populates="leases")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="lease", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "payment_day >= 1 AND payment_day <= 28",
            name="ck_lease_payment_day_range",
        ),
    )


# At most one active lease per unit, enforced by the store
Index(
    "uq_leases_one_active_per_unit",
    Lease.unit_id,
    unique=True,
    postgresql_where=(Lease.status == LeaseStatus.ACTIVE),
    sqlite_where=(Lease.status == LeaseStatus.ACTIVE),
)
