"""Exception taxonomy for the request pipeline.

UntrustedInputError and NotAuthorizedError are fail-silent: the router logs
them and sends nothing back. DomainError subclasses are expected, user
recoverable conditions and end up in the ``error`` field of a response.
"""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eventhub.models.event import Event


class UntrustedInputError(ValueError):
    """Client input that should already have been rejected client-side."""

    def __init__(self, code: str, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)


class NotAuthorizedError(Exception):
    """Requester is not logged in or lacks the privilege for this request."""


class DomainError(Exception):
    code = "domain_error"


class EventNotFoundError(DomainError):
    code = "event_not_found"


class EventOverlapError(DomainError):
    code = "event_overlaps_other_events"

    def __init__(self, conflicts: "list[Event]"):
        self.conflicts = conflicts
        super().__init__(f"overlaps {len(conflicts)} event(s)")


class EventStartsInPastError(DomainError):
    code = "event_starts_in_the_past"


class CannotMoveStartToPastError(DomainError):
    code = "cannot_move_start_to_past"


class EventEditLockedError(DomainError):
    code = "event_edit_locked"


class EventAlreadyStartedError(DomainError):
    code = "event_already_started"


class EventCancelledError(DomainError):
    code = "event_cancelled"


class EventFullError(DomainError):
    code = "no_spots_left"


class MaxAttendeesBelowAttendeeCountError(DomainError):
    code = "max_attendees_below_attendee_count"


class TooManyEventsError(DomainError):
    code = "too_many_events"


class GroupNameTakenError(DomainError):
    code = "group_name_already_in_use"


class GroupNotFoundError(DomainError):
    code = "group_not_found"
