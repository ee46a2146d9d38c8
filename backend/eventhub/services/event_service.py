"""Core event service — enforces the group/event invariants.

Responsibilities:
- Scheduling: no two events of a group may overlap, cancelled ones included
- Capacity: attendee count never exceeds max_attendees
- Time rules: no joining, editing or (un)cancelling events that have started
- Cap of MAX_EVENTS_PER_GROUP events per group

Every function takes a Group and returns a new one; the input is never
mutated, so the caller swaps the table entry only after a success.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from eventhub.models.event import CancellationStatus, Event, EventType
from eventhub.models.group import Group
from eventhub.services.errors import (
    CannotMoveStartToPastError,
    EventAlreadyStartedError,
    EventCancelledError,
    EventEditLockedError,
    EventFullError,
    EventNotFoundError,
    EventOverlapError,
    EventStartsInPastError,
    MaxAttendeesBelowAttendeeCountError,
    TooManyEventsError,
)

logger = logging.getLogger(__name__)

MAX_EVENTS_PER_GROUP = 1000


def total_events(group: Group) -> int:
    """Number of events ever created in the group, cancelled ones included."""
    return len(group.events)


def _with_event(group: Group, event: Event) -> Group:
    return replace(group, events={**group.events, event.event_id: event})


def _get_event(group: Group, event_id: int) -> Event:
    event = group.get_event(event_id)
    if event is None:
        raise EventNotFoundError(f"event {event_id} not in group {group.group_id}")
    return event


def _check_overlaps(group: Group, candidate: Event, exclude_event_id: Optional[int] = None) -> None:
    conflicts = [
        ev for ev in group.sorted_events()
        if ev.event_id != exclude_event_id and ev.overlaps(candidate)
    ]
    if conflicts:
        raise EventOverlapError(conflicts)


def add_event(event: Event, group: Group) -> Group:
    """Insert an event, rejecting it when its window intersects any existing one."""
    _check_overlaps(group, event)
    return _with_event(group, event)


def create_event(
    now: datetime,
    group: Group,
    name: str,
    description: str,
    event_type: EventType,
    start_time: datetime,
    duration_minutes: int,
    max_attendees: Optional[int] = None,
    link: Optional[str] = None,
    address: Optional[str] = None,
) -> tuple[Event, Group]:
    """Build a new event with the next per-group id and add it to the group."""
    if start_time < now:
        raise EventStartsInPastError(start_time.isoformat())
    if total_events(group) >= MAX_EVENTS_PER_GROUP:
        raise TooManyEventsError(group.group_id)

    event = Event(
        event_id=total_events(group),
        name=name,
        description=description,
        event_type=event_type,
        start_time=start_time,
        duration_minutes=duration_minutes,
        created_at=now,
        link=link if event_type == EventType.online else None,
        address=address if event_type == EventType.in_person else None,
        max_attendees=max_attendees,
    )
    updated = add_event(event, group)
    logger.info("Created event '%s' (%s) in group %s", name, event.event_id, group.group_id)
    return event, updated


def edit_event(
    now: datetime,
    event_id: int,
    editor: Callable[[Event], Event],
    group: Group,
    edit_lock: timedelta = timedelta(0),
) -> tuple[Event, Group]:
    """Apply ``editor`` to one event, keeping the group's invariants intact."""
    event = _get_event(group, event_id)

    if now >= event.start_time - edit_lock:
        raise EventEditLockedError(f"event {event_id} starts at {event.start_time.isoformat()}")

    edited = editor(event)
    # Fields the editor may not touch
    edited = replace(
        edited,
        event_id=event.event_id,
        created_at=event.created_at,
        attendees=event.attendees,
        cancellation_status=event.cancellation_status,
        cancelled_at=event.cancelled_at,
        cancel_reason=event.cancel_reason,
    )

    if edited.start_time < now:
        raise CannotMoveStartToPastError(edited.start_time.isoformat())
    if edited.max_attendees is not None and len(edited.attendees) > edited.max_attendees:
        raise MaxAttendeesBelowAttendeeCountError(
            f"{len(edited.attendees)} attendees > cap {edited.max_attendees}"
        )
    _check_overlaps(group, edited, exclude_event_id=event_id)

    logger.info("Edited event %s in group %s", event_id, group.group_id)
    return edited, _with_event(group, edited)


def join_event(now: datetime, user_id: str, event_id: int, group: Group) -> Group:
    """Add a user to the attendee set. Joining twice is a no-op."""
    event = _get_event(group, event_id)
    if event.is_cancelled:
        raise EventCancelledError(str(event_id))
    if event.has_started(now):
        raise EventAlreadyStartedError(str(event_id))
    if user_id in event.attendees:
        return group
    if event.max_attendees is not None and len(event.attendees) >= event.max_attendees:
        raise EventFullError(f"{len(event.attendees)}/{event.max_attendees}")

    logger.info("User %s joined event %s in group %s", user_id, event_id, group.group_id)
    return _with_event(group, replace(event, attendees=event.attendees | {user_id}))


def leave_event(user_id: str, event_id: int, group: Group) -> Group:
    """Remove a user from the attendee set; unknown events and non-attendees are ignored."""
    event = group.get_event(event_id)
    if event is None or user_id not in event.attendees:
        return group
    logger.info("User %s left event %s in group %s", user_id, event_id, group.group_id)
    return _with_event(group, replace(event, attendees=event.attendees - {user_id}))


def edit_cancellation_status(
    now: datetime,
    event_id: int,
    status: CancellationStatus,
    group: Group,
    reason: Optional[str] = None,
) -> Group:
    """Cancel or un-cancel an event that has not started yet.

    Cancelled events keep their slot, so un-cancelling never needs an
    overlap check.
    """
    event = _get_event(group, event_id)
    if event.has_started(now):
        raise EventAlreadyStartedError(str(event_id))

    if status == CancellationStatus.cancelled:
        updated = replace(
            event,
            cancellation_status=status,
            cancelled_at=now,
            cancel_reason=reason,
        )
    else:
        updated = replace(event, cancellation_status=status, cancelled_at=None, cancel_reason=None)

    logger.info("Event %s in group %s is now %s (reason: %s)", event_id, group.group_id, status.value, reason)
    return _with_event(group, updated)
