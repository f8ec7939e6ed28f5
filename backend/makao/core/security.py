"""Firebase JWT verification and role-based access dependencies."""

import logging
from typing import Any, Optional
from uuid import UUID

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials
from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.config import get_settings
from makao.core.database import get_db
from makao.core.permissions import Capability, has_capability
from makao.models.enums import Role
from makao.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK on first use."""
    if not firebase_admin._apps:
        settings = get_settings()
        options = {"projectId": settings.firebase_project_id}
        if settings.google_application_credentials:
            cred = credentials.Certificate(settings.google_application_credentials)
            return firebase_admin.initialize_app(cred, options)
        return firebase_admin.initialize_app(options=options)
    return firebase_admin.get_app()


class AuthenticatedUser:
    """An authenticated caller and the internal user record behind it."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        email_verified: bool = False,
        claims: Optional[dict[str, Any]] = None,
    ):
        self.uid = uid
        self.email = email
        self.email_verified = email_verified
        self.claims = claims or {}
        self.user: Optional[User] = None

    @property
    def db_user_id(self) -> Optional[UUID]:
        return self.user.id if self.user else None

    @property
    def role(self) -> Role:
        return self.user.role if self.user else Role.TENANT

    def can(self, capability: Capability) -> bool:
        return has_capability(self.role, capability)


async def verify_firebase_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthenticatedUser:
    """Verify a Firebase ID token. Tokens are never minted here."""
    token = credentials.credentials

    try:
        decoded_token = auth.verify_id_token(token, app=_firebase_app())
    except auth.ExpiredIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except auth.InvalidIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.warning("Token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token verification failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def get_current_user(
    auth_user: AuthenticatedUser = Depends(verify_firebase_token),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUser:
    """Attach the internal user, syncing it on first sight of the uid."""
    from makao.services.identity_sync import IdentitySyncService

    service = IdentitySyncService(db)
    user = await service.get_by_external_id(auth_user.uid)

    if user is None:
        name = (auth_user.claims.get("name") or "").split(" ", 1)
        user = await service.sync_user(
            external_id=auth_user.uid,
            email=auth_user.email or "",
            first_name=name[0] if name else "",
            last_name=name[1] if len(name) > 1 else "",
            phone=auth_user.claims.get("phone_number"),
            image_url=auth_user.claims.get("picture"),
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    auth_user.user = user
    return auth_user


def require_capability(capability: Capability):
    """Dependency factory: the caller's role must grant ``capability``."""

    def dependency(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if not current_user.can(capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return dependency
