"""Calendar router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from makao.core.database import get_db
from makao.core.permissions import Capability
from makao.core.security import AuthenticatedUser, require_capability
from makao.models.calendar import CalendarEvent
from makao.schemas.calendar import CalendarEventCreate, CalendarEventResponse

router = APIRouter(prefix="/calendar", tags=["calendar"])

calendar_user = require_capability(Capability.MANAGE_CALENDAR)


@router.get("", response_model=List[CalendarEventResponse])
async def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(calendar_user),
):
    """The caller's events starting within [start, end]."""
    query = select(CalendarEvent).where(CalendarEvent.owner_id == current_user.db_user_id)
    if start:
        query = query.where(CalendarEvent.start_date >= start)
    if end:
        query = query.where(CalendarEvent.start_date <= end)

    result = await db.execute(query.order_by(CalendarEvent.start_date))
    return result.scalars().all()


@router.post("", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: CalendarEventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(calendar_user),
):
    """Create a calendar event."""
    event = CalendarEvent(owner_id=current_user.db_user_id, **data.model_dump())
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(calendar_user),
):
    """Delete one of the caller's events."""
    event = await db.get(CalendarEvent, event_id)
    if event is None or event.owner_id != current_user.db_user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

    await db.delete(event)
    await db.commit()
