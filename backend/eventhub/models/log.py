"""Admin log entries — append-only record of trust failures, emails and rate limits."""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


class LogKind(str, enum.Enum):
    untrusted_check_failed = "untrusted_check_failed"
    unauthorized_request = "unauthorized_request"
    login_email = "login_email"
    delete_account_email = "delete_account_email"
    event_reminder_email = "event_reminder_email"
    login_email_rate_limited = "login_email_rate_limited"
    delete_account_email_rate_limited = "delete_account_email_rate_limited"


@dataclass(frozen=True)
class LogEntry:
    time: datetime
    kind: LogKind
    message: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    group_id: Optional[str] = None
    event_id: Optional[int] = None
    success: Optional[bool] = None
