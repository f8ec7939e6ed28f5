"""Calendar event schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from makao.models.enums import CalendarEventType
from makao.schemas.base import BaseSchema, IDMixin, TimestampMixin


class CalendarEventCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    all_day: bool = True
    event_type: CalendarEventType = CalendarEventType.OTHER
    related_entity_type: Optional[str] = Field(None, max_length=50)
    related_entity_id: Optional[UUID] = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CalendarEventResponse(BaseSchema, IDMixin, TimestampMixin):
    owner_id: UUID
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    all_day: bool
    event_type: CalendarEventType
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[UUID] = None
