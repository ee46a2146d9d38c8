"""Event reminder detection.

A reminder fires on the tick where an event's start first enters the
reminder window: it was outside the window at the previous tick and is
inside it now. Each event therefore yields at most one batch, as long as
ticks are closer together than the window is wide.
"""
from datetime import datetime, timedelta
from typing import Iterable

from eventhub.models.event import Event
from eventhub.models.group import Group

REMINDER_WINDOW = timedelta(hours=24)


def entered_window(event: Event, previous: datetime, now: datetime, window: timedelta = REMINDER_WINDOW) -> bool:
    return previous + window < event.start_time <= now + window and event.start_time > now


def due_reminders(
    groups: Iterable[Group],
    previous: datetime,
    now: datetime,
    window: timedelta = REMINDER_WINDOW,
) -> list[tuple[Group, Event]]:
    """Every non-cancelled event whose start entered the window since ``previous``."""
    if now <= previous:
        return []
    return [
        (group, event)
        for group in groups
        for event in group.sorted_events()
        if not event.is_cancelled and entered_window(event, previous, now, window)
    ]
