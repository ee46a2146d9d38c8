"""Event model — lives inside a Group, keyed by a per-group event id."""
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional


class EventType(str, enum.Enum):
    online = "online"
    in_person = "in_person"


class CancellationStatus(str, enum.Enum):
    active = "active"
    cancelled = "cancelled"


@dataclass(frozen=True)
class Event:
    event_id: int
    name: str
    description: str
    event_type: EventType
    start_time: datetime  # UTC
    duration_minutes: int
    created_at: datetime
    link: Optional[str] = None  # online events only
    address: Optional[str] = None  # in-person events only
    max_attendees: Optional[int] = None
    cancellation_status: CancellationStatus = CancellationStatus.active
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    attendees: frozenset[str] = frozenset()

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def is_cancelled(self) -> bool:
        return self.cancellation_status == CancellationStatus.cancelled

    def overlaps(self, other: "Event") -> bool:
        """Half-open interval check: [start, end) windows that only touch do not overlap."""
        return self.start_time < other.end_time and other.start_time < self.end_time

    def has_started(self, now: datetime) -> bool:
        return now >= self.start_time
