"""Identity provider webhook payloads."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email_address: str


class PhoneNumber(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone_number: str


class IdentityUserData(BaseModel):
    """User object as sent by the identity provider. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    phone_numbers: list[PhoneNumber] = Field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    public_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def primary_email(self) -> str:
        return self.email_addresses[0].email_address if self.email_addresses else ""

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phone_numbers[0].phone_number if self.phone_numbers else None

    @property
    def role_hint(self) -> Optional[str]:
        role = self.public_metadata.get("role")
        return role if isinstance(role, str) else None


class IdentityEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    success: bool = True
