"""Payment model."""

import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Text, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from makao.core.database import Base
from makao.models.enums import PaymentStatus, PaymentMethod, PaymentType, db_enum

if TYPE_CHECKING:
    from makao.models.lease import Lease
    from makao.models.user import User


class Payment(Base):
    """A payment against a lease.

    Status moves pending -> verified or pending -> rejected only; verified,
    completed and rejected rows are terminal.
    """

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    lease_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("leases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Payer (tenant on the lease)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        db_enum(PaymentMethod, "payment_method"),
        nullable=False,
    )
    payment_type: Mapped[PaymentType] = mapped_column(
        db_enum(PaymentType, "payment_type"),
        default=PaymentType.RENT,
        nullable=False,
    )
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)
    # Billing period label, e.g. "2025-01"
    month: Mapped[Optional[str]] = mapped_column(String(7), nullable=True, index=True)

    status: Mapped[PaymentStatus] = mapped_column(
        db_enum(PaymentStatus, "payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Review
    verification_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    verified_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    lease: Mapped["Lease"] = relationship("Lease", back_populates="payments")
    payer: Mapped["User"] = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("lease_id", "reference_number", name="uq_payments_lease_reference"),
    )
