"""Pending single-use tokens for the email login and account deletion flows."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class EventRef:
    group_id: str
    event_id: int


@dataclass(frozen=True)
class PendingLogin:
    email: str
    created_at: datetime
    join_event: Optional[EventRef] = None


@dataclass(frozen=True)
class PendingDelete:
    user_id: str
    created_at: datetime
