"""User schemas."""

from typing import Optional

from pydantic import Field

from makao.models.enums import Role
from makao.schemas.base import BaseSchema, IDMixin, TimestampMixin


class UserResponse(BaseSchema, IDMixin, TimestampMixin):
    """User response."""

    external_id: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: Role
    is_active: bool


class RoleChangeRequest(BaseSchema):
    """Explicit role change. Legacy labels such as "property_manager" are accepted."""

    role: str = Field(..., min_length=1, max_length=50)
