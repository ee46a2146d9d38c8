"""User model held in the backend's user table."""
from dataclasses import dataclass
from datetime import datetime

DEFAULT_PROFILE_IMAGE = "default"


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    email: str
    created_at: datetime
    description: str = ""
    profile_image: str = DEFAULT_PROFILE_IMAGE
    timezone: str = "UTC"  # IANA tz
    email_reminders: bool = True
