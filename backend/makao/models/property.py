"""Property and Unit models."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Text, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from makao.core.database import Base
from makao.models.enums import PropertyType, PropertyStatus, UnitStatus, db_enum

if TYPE_CHECKING:
    from makao.models.user import User
    from makao.models.lease import Lease
    from makao.models.maintenance import MaintenanceRequest


class Property(Base):
    """A property (building/complex) owned by a landlord."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    property_type: Mapped[PropertyType] = mapped_column(
        db_enum(PropertyType, "property_type"),
        default=PropertyType.APARTMENT,
        nullable=False,
    )
    status: Mapped[PropertyStatus] = mapped_column(
        db_enum(PropertyStatus, "property_status"),
        default=PropertyStatus.ACTIVE,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Denormalized; maintained by the units endpoints
    total_units: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="properties")
    units: Mapped[list["Unit"]] = relationship(
        "Unit", back_populates="property", cascade="all, delete-orphan"
    )


class Unit(Base):
    """A rentable unit within a property."""

    __tablename__ = "units"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    unit_number: Mapped[str] = mapped_column(String(50), nullable=False)
    floor_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # occupied iff the unit has an active lease (kept by LeaseLifecycleService)
    status: Mapped[UnitStatus] = mapped_column(
        db_enum(UnitStatus, "unit_status"),
        default=UnitStatus.VACANT,
        nullable=False,
        index=True,
    )

    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, default=0)
    square_feet: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    rent_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    property: Mapped["Property"] = relationship("Property", back_populates="units")
    leases: Mapped[list["Lease"]] = relationship(
        "Lease", back_populates="unit", cascade="all, delete-orphan"
    )
    maintenance_requests: Mapped[list["MaintenanceRequest"]] = relationship(
        "MaintenanceRequest", back_populates="unit", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("property_id", "unit_number", name="uq_units_property_unit_number"),
    )
