"""
Identity provider sync.

Keeps the users table in step with the identity provider. Sync updates
contact details only; a user's role is set once on first sync and afterwards
changes only through ``change_role``.
"""

import logging
import re
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.config import get_settings
from makao.core.errors import NotFoundError, ValidationError
from makao.core.permissions import parse_role
from makao.models.enums import AuditAction, Role
from makao.models.user import User
from makao.services.audit import AuditService

logger = logging.getLogger(__name__)

_ADMIN_EMAIL_PATTERN = re.compile(r"admin|landlord|owner|manager", re.IGNORECASE)


def assign_initial_role(
    email: str,
    role_hint: Optional[str] = None,
    use_email_heuristic: bool = False,
) -> Role:
    """Pick the role for a newly seen user.

    An explicit, recognised hint from provider metadata wins. The email
    substring heuristic is only consulted when enabled by configuration.
    """
    hinted = parse_role(role_hint)
    if hinted is not None:
        return hinted
    if use_email_heuristic and email and _ADMIN_EMAIL_PATTERN.search(email):
        return Role.ADMIN
    return Role.TENANT


class IdentitySyncService:
    """Upserts users keyed by their identity-provider id."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()

    async def sync_user(
        self,
        external_id: str,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        image_url: Optional[str] = None,
        role_hint: Optional[str] = None,
    ) -> User:
        """Create or update the user for ``external_id``. Idempotent."""
        if not external_id:
            raise ValidationError("Missing identity id")

        user = await self.get_by_external_id(external_id)
        created = user is None

        if created:
            role = assign_initial_role(
                email,
                role_hint=role_hint,
                use_email_heuristic=get_settings().role_email_heuristic,
            )
            user = User(external_id=external_id, email=email or "", role=role, is_active=True)
            self.db.add(user)

        if email:
            user.email = email
        user.first_name = first_name or user.first_name or ""
        user.last_name = last_name or user.last_name or ""
        if phone:
            user.phone = phone
        if image_url:
            user.profile_image_url = image_url

        try:
            await self.db.flush()
            if created:
                await self.audit.log(
                    action=AuditAction.USER_SYNCED,
                    resource_type="user",
                    resource_id=user.id,
                    details={"external_id": external_id, "role": user.role.value},
                )
            await self.db.commit()
        except IntegrityError:
            # Concurrent first sync of the same id; the other writer won
            await self.db.rollback()
            existing = await self.get_by_external_id(external_id)
            if existing is None:
                raise
            return existing

        if created:
            logger.info("Synced new user %s as %s", external_id, user.role.value)
        return user

    async def deactivate(self, external_id: str) -> Optional[User]:
        """Soft-delete: the row stays for history, login is refused."""
        user = await self.get_by_external_id(external_id)
        if user is None:
            logger.info("Deactivation for unknown identity %s ignored", external_id)
            return None

        user.is_active = False
        await self.audit.log(
            action=AuditAction.USER_DEACTIVATED,
            resource_type="user",
            resource_id=user.id,
            details={"external_id": external_id},
        )
        await self.db.commit()
        logger.info("Deactivated user %s", external_id)
        return user

    async def change_role(self, user_id: UUID, role: Role, actor: User) -> User:
        """Explicit role change; the only path that alters an existing role."""
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        old_role = user.role
        if old_role == role:
            return user

        user.role = role
        await self.audit.log_role_changed(user.id, old_role.value, role.value, actor.id)
        await self.db.commit()
        logger.info("Role of user %s changed %s -> %s by %s", user.id, old_role.value, role.value, actor.id)
        return user
