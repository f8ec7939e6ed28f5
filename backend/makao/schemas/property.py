"""Property and Unit schemas."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from makao.models.enums import PropertyStatus, PropertyType, UnitStatus
from makao.schemas.base import BaseSchema, IDMixin, PartialUpdate, TimestampMixin


class PropertyCreate(BaseSchema):
    """Create a new property."""

    name: str = Field(..., min_length=2, max_length=255)
    address: str = Field(..., min_length=3, max_length=500)
    property_type: PropertyType = PropertyType.APARTMENT
    description: Optional[str] = None


class PropertyUpdate(PartialUpdate):
    """Update property."""

    non_nullable = ("name", "address", "property_type", "status")

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = Field(None, min_length=3, max_length=500)
    property_type: Optional[PropertyType] = None
    status: Optional[PropertyStatus] = None
    description: Optional[str] = None


class PropertyResponse(BaseSchema, IDMixin, TimestampMixin):
    """Property response."""

    owner_id: UUID
    name: str
    address: str
    property_type: PropertyType
    status: PropertyStatus
    description: Optional[str] = None
    total_units: int = 0


class PropertyListResponse(BaseSchema):
    properties: list[PropertyResponse]
    total: int


class UnitCreate(BaseSchema):
    """Create a new unit."""

    unit_number: str = Field(..., min_length=1, max_length=50)
    floor_number: Optional[str] = Field(None, max_length=20)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    square_feet: Optional[int] = Field(None, gt=0)
    rent_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None


class UnitUpdate(PartialUpdate):
    """Update unit.

    Status may only be moved between vacant, maintenance and renovation;
    occupancy follows lease allocation.
    """

    non_nullable = (
        "unit_number",
        "status",
        "bedrooms",
        "bathrooms",
        "rent_amount",
        "deposit_amount",
    )

    unit_number: Optional[str] = Field(None, min_length=1, max_length=50)
    floor_number: Optional[str] = Field(None, max_length=20)
    status: Optional[UnitStatus] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    square_feet: Optional[int] = Field(None, gt=0)
    rent_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    deposit_amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None


class UnitResponse(BaseSchema, IDMixin, TimestampMixin):
    """Unit response."""

    property_id: UUID
    unit_number: str
    floor_number: Optional[str] = None
    status: UnitStatus
    bedrooms: int = 0
    bathrooms: int = 0
    square_feet: Optional[int] = None
    rent_amount: Decimal
    deposit_amount: Decimal
    description: Optional[str] = None
