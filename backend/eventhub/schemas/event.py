"""Pydantic schemas for Events."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from eventhub.models.event import CancellationStatus, Event, EventType


class EventOut(BaseModel):
    event_id: int
    name: str
    description: str
    event_type: EventType
    link: Optional[str] = None
    address: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    created_at: datetime
    max_attendees: Optional[int] = None
    cancellation_status: CancellationStatus
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    attendees: list[str] = []


def event_to_out(event: Event) -> EventOut:
    return EventOut(
        event_id=event.event_id,
        name=event.name,
        description=event.description,
        event_type=event.event_type,
        link=event.link,
        address=event.address,
        start_time=event.start_time,
        end_time=event.end_time,
        duration_minutes=event.duration_minutes,
        created_at=event.created_at,
        max_attendees=event.max_attendees,
        cancellation_status=event.cancellation_status,
        cancelled_at=event.cancelled_at,
        cancel_reason=event.cancel_reason,
        attendees=sorted(event.attendees),
    )
