"""Validators that turn untrusted client primitives into domain values.

Each validator either returns the cleaned value or raises UntrustedInputError.
They are pure so the router can run them before touching any state.
"""
import unicodedata
from datetime import datetime, timezone
from typing import Optional

import pytz
from pydantic import EmailStr, HttpUrl, TypeAdapter, ValidationError

from eventhub.models.event import CancellationStatus, EventType
from eventhub.models.group import GroupVisibility
from eventhub.models.user import DEFAULT_PROFILE_IMAGE
from eventhub.services.errors import UntrustedInputError

MAX_USER_NAME_LENGTH = 25
MAX_GROUP_NAME_LENGTH = 50
MAX_EVENT_NAME_LENGTH = 40
MAX_DESCRIPTION_LENGTH = 2000
MAX_PROFILE_IMAGE_LENGTH = 100_000
PROFILE_IMAGE_PREFIX = "data:image/png;base64,"
MAX_DURATION_MINUTES = 7 * 24 * 60
MAX_ATTENDEES_LIMIT = 10_000
MAX_LINK_LENGTH = 2000
MAX_ADDRESS_LENGTH = 200
MAX_SEARCH_LENGTH = 1000
MAX_CANCEL_REASON_LENGTH = 500
# Keeps start + MAX_DURATION_MINUTES and every timezone conversion inside datetime range
MIN_START_TIME = datetime(2000, 1, 1, tzinfo=timezone.utc)
MAX_START_TIME = datetime(3000, 1, 1, tzinfo=timezone.utc)

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(HttpUrl)


def _name(raw: str, max_length: int) -> str:
    value = raw.strip()
    if not value:
        raise UntrustedInputError("NameTooShort")
    if len(value) > max_length:
        raise UntrustedInputError("NameTooLong", f"{len(value)} > {max_length}")
    if any(unicodedata.category(ch) == "Cc" for ch in value):
        raise UntrustedInputError("NameHasControlCharacters", repr(value[:50]))
    return value


def user_name(raw: str) -> str:
    return _name(raw, MAX_USER_NAME_LENGTH)


def group_name(raw: str) -> str:
    return _name(raw, MAX_GROUP_NAME_LENGTH)


def event_name(raw: str) -> str:
    return _name(raw, MAX_EVENT_NAME_LENGTH)


def description(raw: str) -> str:
    value = raw.strip()
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise UntrustedInputError("StringIsTooLong", f"description is {len(value)} characters")
    return value


def email_address(raw: str) -> str:
    try:
        value = _email_adapter.validate_python(raw.strip())
    except ValidationError:
        raise UntrustedInputError("InvalidEmailAddress", raw[:100])
    return value.lower()


def profile_image(raw: str) -> str:
    if raw == DEFAULT_PROFILE_IMAGE:
        return raw
    if len(raw) > MAX_PROFILE_IMAGE_LENGTH:
        raise UntrustedInputError("StringIsTooLong", f"profile image is {len(raw)} characters")
    if not raw.startswith(PROFILE_IMAGE_PREFIX):
        raise UntrustedInputError("InvalidDataUrlPrefix")
    return raw


def duration_minutes(raw: int) -> int:
    if raw < 1 or raw > MAX_DURATION_MINUTES:
        raise UntrustedInputError("InvalidDuration", str(raw))
    return raw


def max_attendees(raw: Optional[int]) -> Optional[int]:
    if raw is None:
        return None
    if raw < 1 or raw > MAX_ATTENDEES_LIMIT:
        raise UntrustedInputError("InvalidMaxAttendees", str(raw))
    return raw


def meeting_link(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if len(value) > MAX_LINK_LENGTH:
        raise UntrustedInputError("StringIsTooLong", "link")
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise UntrustedInputError("InvalidLink", value[:100])
    return value


def address(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if len(value) > MAX_ADDRESS_LENGTH:
        raise UntrustedInputError("StringIsTooLong", "address")
    return value


def start_time(raw: datetime) -> datetime:
    if raw.tzinfo is None or raw.utcoffset() is None:
        raise UntrustedInputError("NaiveDatetime", raw.isoformat())
    try:
        value = raw.astimezone(timezone.utc)
    except OverflowError:
        raise UntrustedInputError("InvalidStartTime", raw.isoformat())
    if not MIN_START_TIME <= value < MAX_START_TIME:
        raise UntrustedInputError("InvalidStartTime", value.isoformat())
    return value


def timezone_name(raw: str) -> str:
    if raw not in pytz.all_timezones_set:
        raise UntrustedInputError("UnknownTimezone", raw[:100])
    return raw


def search_text(raw: str) -> str:
    if len(raw) > MAX_SEARCH_LENGTH:
        raise UntrustedInputError("StringIsTooLong", "search text")
    return raw.strip()


def cancel_reason(raw: Optional[str]) -> Optional[str]:
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if len(value) > MAX_CANCEL_REASON_LENGTH:
        raise UntrustedInputError("StringIsTooLong", "cancel reason")
    return value


def visibility(raw: str) -> GroupVisibility:
    try:
        return GroupVisibility(raw)
    except ValueError:
        raise UntrustedInputError("InvalidVisibility", raw[:50])


def event_type(raw: str) -> EventType:
    try:
        return EventType(raw)
    except ValueError:
        raise UntrustedInputError("InvalidEventType", raw[:50])


def cancellation_status(raw: str) -> CancellationStatus:
    try:
        return CancellationStatus(raw)
    except ValueError:
        raise UntrustedInputError("InvalidCancellationStatus", raw[:50])
