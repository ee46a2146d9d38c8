"""Pydantic schemas for Groups."""
from datetime import datetime

from pydantic import BaseModel

from eventhub.models.group import Group, GroupVisibility
from eventhub.schemas.event import EventOut, event_to_out


class GroupOut(BaseModel):
    group_id: str
    owner_id: str
    name: str
    description: str
    visibility: GroupVisibility
    created_at: datetime
    events: list[EventOut] = []


def group_to_out(group: Group) -> GroupOut:
    return GroupOut(
        group_id=group.group_id,
        owner_id=group.owner_id,
        name=group.name,
        description=group.description,
        visibility=group.visibility,
        created_at=group.created_at,
        events=[event_to_out(ev) for ev in group.sorted_events()],
    )
