"""MaintenanceRequest model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from makao.core.database import Base
from makao.models.enums import MaintenanceStatus, MaintenancePriority, db_enum

if TYPE_CHECKING:
    from makao.models.property import Unit
    from makao.models.user import User


class MaintenanceRequest(Base):
    """A maintenance request filed against a unit."""

    __tablename__ = "maintenance_requests"

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
    tenant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[MaintenanceStatus] = mapped_column(
        db_enum(MaintenanceStatus, "maintenance_status"),
        default=MaintenanceStatus.PENDING,
        nullable=False,
        index=True,
    )
    priority: Mapped[MaintenancePriority] = mapped_column(
        db_enum(MaintenancePriority, "maintenance_priority"),
        default=MaintenancePriority.MEDIUM,
        nullable=False,
    )

    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    unit: Mapped["Unit"] = relationship("Unit", back_populates="maintenance_requests")
    tenant: Mapped[Optional["User"]] = relationship("User")
