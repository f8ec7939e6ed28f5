"""Users router: current user and explicit role changes."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.errors import ValidationError
from makao.core.permissions import Capability, parse_role
from makao.core.security import AuthenticatedUser, get_current_user, require_capability
from makao.schemas.user import RoleChangeRequest, UserResponse
from makao.services.identity_sync import IdentitySyncService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: AuthenticatedUser = Depends(get_current_user)):
    """Get the current user."""
    return current_user.user


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: UUID,
    data: RoleChangeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_capability(Capability.CHANGE_ROLES)),
):
    """Change a user's role. The only way a role changes after first sync."""
    role = parse_role(data.role)
    if role is None:
        raise ValidationError(f"Unknown role: {data.role}")

    return await IdentitySyncService(db).change_role(user_id, role, current_user.user)
