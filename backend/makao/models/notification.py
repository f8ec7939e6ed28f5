"""In-app notifications and the scheduled-notification outbox."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Any

from sqlalchemy import JSON, String, DateTime, ForeignKey, Text, Integer, Boolean, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from makao.core.database import Base
from makao.models.enums import DeliveryStatus, NotificationType, db_enum

if TYPE_CHECKING:
    from makao.models.user import User

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Notification(Base):
    """A notification shown in a user's inbox. Only is_read ever changes."""

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        db_enum(NotificationType, "notification_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Outbound delivery outcome at creation time
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    sms_sent: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="notifications")


class ScheduledNotification(Base):
    """Durable deferred notification, delivered at-least-once by the worker.

    unique_scope de-duplicates schedules (e.g. "rent_reminder:{lease}:{2025-01}").
    """

    __tablename__ = "scheduled_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        db_enum(NotificationType, "notification_type"),
        nullable=False,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )

    # {"name": ..., "email": ..., "phone": ...}
    recipient: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    variables: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    status: Mapped[DeliveryStatus] = mapped_column(
        db_enum(DeliveryStatus, "delivery_status"),
        default=DeliveryStatus.PENDING,
        nullable=False,
        index=True,
    )
    unique_scope: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)

    # Retry tracking
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    due_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_scheduled_notifications_due", "status", "due_at"),
    )
