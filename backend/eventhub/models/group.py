"""Group model — owns its metadata and its events."""
import enum
from dataclasses import dataclass, field
from datetime import datetime

from eventhub.models.event import Event


class GroupVisibility(str, enum.Enum):
    public = "public"
    unlisted = "unlisted"


@dataclass(frozen=True)
class Group:
    group_id: str
    owner_id: str  # immutable after creation
    name: str
    description: str
    visibility: GroupVisibility
    created_at: datetime
    events: dict[int, Event] = field(default_factory=dict)

    def get_event(self, event_id: int) -> Event | None:
        return self.events.get(event_id)

    def sorted_events(self) -> list[Event]:
        return sorted(self.events.values(), key=lambda ev: ev.start_time)
