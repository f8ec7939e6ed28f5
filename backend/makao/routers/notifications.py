"""Notifications router: send, inbox and read state."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, get_current_user, require_capability
from makao.models.user import User
from makao.schemas.base import Pagination
from makao.schemas.notification import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationSend,
)
from makao.services.notifications import (
    NotificationDispatcher,
    NotificationService,
    Recipient,
    get_notification_dispatcher,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    data: NotificationSend,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.SEND_NOTIFICATIONS)),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Send over SMS/email and store in the recipient's inbox with per-channel outcome."""
    recipient_user = await db.get(User, data.user_id)
    if recipient_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    variables = {"message": data.message, "title": data.title, **data.variables}
    result = await dispatcher.send(data.type, Recipient.from_user(recipient_user), variables)

    return await NotificationService(db).create(
        recipient_user.id,
        data.type,
        data.title,
        data.message,
        email_sent=result.email.success,
        sms_sent=result.sms.success,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """The caller's notifications, newest first."""
    notifications, total, unread = await NotificationService(db).list_for_user(
        current_user.db_user_id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


@router.patch("", response_model=MarkReadResponse)
async def mark_read(
    data: MarkReadRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    """Mark notifications read; only the caller's own are affected."""
    updated = await NotificationService(db).mark_read(
        current_user.db_user_id,
        None if data.all else data.ids,
    )
    return MarkReadResponse(updated=updated)
