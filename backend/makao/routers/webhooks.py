"""Identity provider webhook."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.config import Settings, get_settings
from makao.core.database import get_db
from makao.core.errors import ValidationError
from makao.schemas.webhook import IdentityEvent, IdentityUserData, WebhookAck
from makao.services.identity_sync import IdentitySyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Constant-time check of the shared secret header."""
    expected = settings.identity_webhook_secret.encode()
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret.encode(), expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/identity", response_model=WebhookAck, dependencies=[Depends(verify_webhook_secret)])
async def identity_webhook(
    event: IdentityEvent,
    db: AsyncSession = Depends(get_db),
):
    """Handle user.created / user.updated / user.deleted. Other events are acknowledged."""
    service = IdentitySyncService(db)

    if event.type in ("user.created", "user.updated"):
        try:
            data = IdentityUserData.model_validate(event.data)
        except PydanticValidationError:
            raise ValidationError("Malformed user payload")

        await service.sync_user(
            external_id=data.id,
            email=data.primary_email,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.primary_phone,
            image_url=data.image_url,
            role_hint=data.role_hint,
        )
    elif event.type == "user.deleted":
        external_id = event.data.get("id")
        if not external_id:
            raise ValidationError("Missing user id")
        await service.deactivate(str(external_id))
    else:
        logger.debug("Ignoring identity event %s", event.type)

    return WebhookAck()
