"""
Notification dispatch and the in-app notification inbox.

Dispatch is best-effort: each channel is attempted independently and its
failure is logged and reported in the result, never raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from makao.models.enums import NotificationType
from makao.models.notification import Notification
from makao.models.user import User
from makao.services.email import Attachment, EmailSender
from makao.services.sms import SmsSender
from makao.services.templates import email_subject, render_email, render_sms

logger = logging.getLogger(__name__)


@dataclass
class Recipient:
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Recipient":
        return cls(name=user.full_name, email=user.email or None, phone=user.phone or None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recipient":
        return cls(name=data.get("name") or "", email=data.get("email"), phone=data.get("phone"))

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"name": self.name, "email": self.email, "phone": self.phone}


@dataclass
class ChannelResult:
    attempted: bool = False
    success: bool = False
    error: Optional[str] = None


@dataclass
class DispatchResult:
    sms: ChannelResult = field(default_factory=ChannelResult)
    email: ChannelResult = field(default_factory=ChannelResult)

    @property
    def any_success(self) -> bool:
        return self.sms.success or self.email.success

    @property
    def any_failure(self) -> bool:
        return (self.sms.attempted and not self.sms.success) or (
            self.email.attempted and not self.email.success
        )


class NotificationDispatcher:
    """Renders a template and sends it over SMS and/or email."""

    def __init__(
        self,
        email_sender: Optional[EmailSender] = None,
        sms_sender: Optional[SmsSender] = None,
    ):
        self.email_sender = email_sender or EmailSender()
        self.sms_sender = sms_sender or SmsSender()

    async def send(
        self,
        notification_type: NotificationType,
        recipient: Recipient,
        variables: Optional[Mapping[str, Any]] = None,
        attachments: Optional[list[Attachment]] = None,
    ) -> DispatchResult:
        """SMS when the recipient has a phone, email when it has an address."""
        variables = {"name": recipient.name, **(variables or {})}
        result = DispatchResult()

        if recipient.phone:
            result.sms.attempted = True
            try:
                await self.sms_sender.send(recipient.phone, render_sms(notification_type, variables))
                result.sms.success = True
            except Exception as e:
                result.sms.error = str(e)
                logger.warning("SMS %s to %s failed: %s", notification_type.value, recipient.phone, e)

        if recipient.email:
            result.email.attempted = True
            try:
                await self.email_sender.send(
                    recipient.email,
                    email_subject(notification_type),
                    render_email(notification_type, variables),
                    attachments=attachments,
                )
                result.email.success = True
            except Exception as e:
                result.email.error = str(e)
                logger.warning("Email %s to %s failed: %s", notification_type.value, recipient.email, e)

        if not result.sms.attempted and not result.email.attempted:
            logger.info("No contact channel for %s notification to %r", notification_type.value, recipient.name)

        return result


_dispatcher: Optional[NotificationDispatcher] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """Get the notification dispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


async def dispatch_quietly(
    dispatcher: NotificationDispatcher,
    notification_type: NotificationType,
    recipient: Recipient,
    variables: Optional[Mapping[str, Any]] = None,
    attachments: Optional[list[Attachment]] = None,
) -> None:
    """Background-task entry point; the primary operation has already committed."""
    try:
        await dispatcher.send(notification_type, recipient, variables, attachments)
    except Exception:
        logger.exception("Notification %s dispatch crashed", notification_type.value)


class NotificationService:
    """In-app notifications stored per user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        email_sent: bool = False,
        sms_sent: bool = False,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            email_sent=email_sent,
            sms_sent=sms_sent,
        )
        self.db.add(notification)
        await self.db.commit()
        await self.db.refresh(notification)
        return notification

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int, int]:
        """Page of notifications, total count and unread count."""
        filters = [Notification.user_id == user_id]
        if unread_only:
            filters.append(Notification.is_read.is_(False))

        result = await self.db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count(Notification.id)).where(*filters))
        ).scalar_one()
        unread = (
            await self.db.execute(
                select(func.count(Notification.id)).where(
                    Notification.user_id == user_id,
                    Notification.is_read.is_(False),
                )
            )
        ).scalar_one()
        return list(result.scalars().all()), total, unread

    async def mark_read(
        self,
        user_id: UUID,
        notification_ids: Optional[Iterable[UUID]] = None,
    ) -> int:
        """Mark the given notifications (or all of them) read. Returns rows changed."""
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        if notification_ids is not None:
            ids = list(notification_ids)
            if not ids:
                return 0
            stmt = stmt.where(Notification.id.in_(ids))

        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0
