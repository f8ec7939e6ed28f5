"""Notification schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import Field, model_validator

from makao.models.enums import NotificationType
from makao.schemas.base import BaseSchema, IDMixin, Pagination


class NotificationSend(BaseSchema):
    """Send a notification to a user over SMS/email and store it in their inbox."""

    user_id: UUID
    type: NotificationType = NotificationType.GENERAL_ANNOUNCEMENT
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    variables: dict[str, Any] = Field(default_factory=dict)


class NotificationResponse(BaseSchema, IDMixin):
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    is_read: bool
    email_sent: bool
    sms_sent: bool
    created_at: datetime


class NotificationListResponse(BaseSchema):
    notifications: list[NotificationResponse]
    unread_count: int
    pagination: Pagination


class MarkReadRequest(BaseSchema):
    """Either explicit ids or all=true."""

    ids: Optional[list[UUID]] = None
    all: bool = False

    @model_validator(mode="after")
    def validate_target(self):
        if not self.all and not self.ids:
            raise ValueError("Provide ids or set all to true")
        return self


class MarkReadResponse(BaseSchema):
    updated: int
