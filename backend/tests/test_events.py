"""Tests for the event service invariants.

Covers:
- Per-group event ids and the event cap
- Overlap rejection (cancelled events still hold their slot)
- Capacity and joining rules
- Edit rules: lock at start, protected fields, no move into the past
- Cancellation and un-cancellation
"""
from dataclasses import replace
from datetime import timedelta

import pytest

from eventhub.models.event import CancellationStatus, Event, EventType
from eventhub.models.group import Group, GroupVisibility
from eventhub.services import event_service
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
from tests.conftest import NOW


def _group() -> Group:
    return Group(
        group_id="g1",
        owner_id="owner",
        name="Run Club",
        description="",
        visibility=GroupVisibility.public,
        created_at=NOW,
    )


def _create(group: Group, hours_from_now: float = 48, duration: int = 60, max_attendees=None, name="5k"):
    return event_service.create_event(
        NOW,
        group,
        name,
        "",
        EventType.in_person,
        NOW + timedelta(hours=hours_from_now),
        duration,
        max_attendees,
        address="Riverside park",
    )


class TestCreate:
    def test_ids_count_up_per_group(self):
        first, group = _create(_group(), 48)
        second, group = _create(group, 72)
        assert (first.event_id, second.event_id) == (0, 1)
        assert event_service.total_events(group) == 2

    def test_input_group_not_mutated(self):
        original = _group()
        _, updated = _create(original)
        assert original.events == {}
        assert len(updated.events) == 1

    def test_location_matches_type(self):
        event, _ = event_service.create_event(
            NOW, _group(), "Call", "", EventType.online, NOW + timedelta(hours=1), 30,
            link="https://meet.example.com/x", address="ignored",
        )
        assert event.link == "https://meet.example.com/x"
        assert event.address is None

    def test_start_in_past_rejected(self):
        with pytest.raises(EventStartsInPastError):
            _create(_group(), hours_from_now=-1)

    def test_event_cap(self):
        events = {
            i: Event(
                event_id=i,
                name=f"e{i}",
                description="",
                event_type=EventType.online,
                start_time=NOW + timedelta(hours=i + 1),
                duration_minutes=30,
                created_at=NOW,
            )
            for i in range(event_service.MAX_EVENTS_PER_GROUP)
        }
        with pytest.raises(TooManyEventsError):
            _create(replace(_group(), events=events), hours_from_now=5000)


class TestOverlap:
    def test_overlapping_event_rejected(self):
        first, group = _create(_group(), 48, duration=60)
        with pytest.raises(EventOverlapError) as exc:
            _create(group, 48.5)
        assert [ev.event_id for ev in exc.value.conflicts] == [first.event_id]

    def test_touching_windows_allowed(self):
        _, group = _create(_group(), 48, duration=60)
        event, group = _create(group, 49)
        assert event.event_id == 1

    def test_cancelled_event_still_blocks(self):
        first, group = _create(_group(), 48)
        group = event_service.edit_cancellation_status(NOW, first.event_id, CancellationStatus.cancelled, group)
        with pytest.raises(EventOverlapError):
            _create(group, 48)


class TestJoin:
    def test_capacity(self):
        """Run Club 5k with two spots: the third runner waits for a free spot."""
        event, group = _create(_group(), max_attendees=2)
        group = event_service.join_event(NOW, "ada", event.event_id, group)
        group = event_service.join_event(NOW, "bob", event.event_id, group)
        with pytest.raises(EventFullError):
            event_service.join_event(NOW, "cy", event.event_id, group)

        group = event_service.leave_event("ada", event.event_id, group)
        group = event_service.join_event(NOW, "cy", event.event_id, group)
        assert group.events[event.event_id].attendees == frozenset({"bob", "cy"})

    def test_join_twice_is_noop(self):
        event, group = _create(_group(), max_attendees=1)
        group = event_service.join_event(NOW, "ada", event.event_id, group)
        assert event_service.join_event(NOW, "ada", event.event_id, group) is group

    def test_join_cancelled(self):
        event, group = _create(_group())
        group = event_service.edit_cancellation_status(NOW, event.event_id, CancellationStatus.cancelled, group)
        with pytest.raises(EventCancelledError):
            event_service.join_event(NOW, "ada", event.event_id, group)

    def test_join_started(self):
        event, group = _create(_group())
        with pytest.raises(EventAlreadyStartedError):
            event_service.join_event(event.start_time, "ada", event.event_id, group)

    def test_join_unknown_event(self):
        with pytest.raises(EventNotFoundError):
            event_service.join_event(NOW, "ada", 7, _group())

    def test_leave_when_not_attending(self):
        event, group = _create(_group())
        assert event_service.leave_event("ada", event.event_id, group) is group
        assert event_service.leave_event("ada", 99, group) is group


class TestEdit:
    def test_shift_overlapping_own_window(self):
        event, group = _create(_group(), duration=60)
        edited, group = event_service.edit_event(
            NOW, event.event_id, lambda ev: replace(ev, start_time=ev.start_time + timedelta(minutes=30)), group
        )
        assert edited.start_time == event.start_time + timedelta(minutes=30)

    def test_move_onto_other_event(self):
        first, group = _create(_group(), 48)
        second, group = _create(group, 72)
        with pytest.raises(EventOverlapError):
            event_service.edit_event(
                NOW, second.event_id, lambda ev: replace(ev, start_time=first.start_time), group
            )

    def test_locked_once_started(self):
        event, group = _create(_group())
        with pytest.raises(EventEditLockedError):
            event_service.edit_event(event.start_time, event.event_id, lambda ev: ev, group)

    def test_configurable_lock(self):
        event, group = _create(_group())
        with pytest.raises(EventEditLockedError):
            event_service.edit_event(
                event.start_time - timedelta(minutes=30),
                event.event_id,
                lambda ev: ev,
                group,
                edit_lock=timedelta(hours=1),
            )

    def test_cannot_move_start_to_past(self):
        event, group = _create(_group())
        with pytest.raises(CannotMoveStartToPastError):
            event_service.edit_event(
                NOW, event.event_id, lambda ev: replace(ev, start_time=NOW - timedelta(hours=1)), group
            )

    def test_protected_fields_kept(self):
        event, group = _create(_group())
        group = event_service.join_event(NOW, "ada", event.event_id, group)
        edited, _ = event_service.edit_event(
            NOW,
            event.event_id,
            lambda ev: replace(ev, name="10k", attendees=frozenset(), event_id=42),
            group,
        )
        assert edited.name == "10k"
        assert edited.event_id == event.event_id
        assert edited.attendees == frozenset({"ada"})

    def test_max_attendees_below_count(self):
        event, group = _create(_group())
        group = event_service.join_event(NOW, "ada", event.event_id, group)
        group = event_service.join_event(NOW, "bob", event.event_id, group)
        with pytest.raises(MaxAttendeesBelowAttendeeCountError):
            event_service.edit_event(NOW, event.event_id, lambda ev: replace(ev, max_attendees=1), group)


class TestCancellation:
    def test_cancel_and_restore(self):
        event, group = _create(_group())
        group = event_service.edit_cancellation_status(
            NOW, event.event_id, CancellationStatus.cancelled, group, reason="Storm warning"
        )
        cancelled = group.events[event.event_id]
        assert cancelled.is_cancelled
        assert cancelled.cancelled_at == NOW
        assert cancelled.cancel_reason == "Storm warning"

        group = event_service.edit_cancellation_status(NOW, event.event_id, CancellationStatus.active, group)
        restored = group.events[event.event_id]
        assert not restored.is_cancelled
        assert restored.cancelled_at is None
        assert restored.cancel_reason is None

    def test_cannot_cancel_started_event(self):
        event, group = _create(_group())
        with pytest.raises(EventAlreadyStartedError):
            event_service.edit_cancellation_status(
                event.start_time + timedelta(minutes=1), event.event_id, CancellationStatus.cancelled, group
            )
