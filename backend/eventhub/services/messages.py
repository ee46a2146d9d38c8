"""Messages consumed by the backend loop and effects it produces."""
import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel


# ── Inbound ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ClientConnected:
    session_id: str
    connection_id: str


@dataclass(frozen=True)
class ClientDisconnected:
    session_id: str
    connection_id: str


@dataclass(frozen=True)
class ClientRequest:
    session_id: str
    connection_id: str
    payload: Any  # raw JSON, parsed by the backend


@dataclass(frozen=True)
class Tick:
    pass


class EmailKind(str, enum.Enum):
    login = "login"
    delete_account = "delete_account"
    event_reminder = "event_reminder"


@dataclass(frozen=True)
class SendEmail:
    kind: EmailKind
    to_email: str
    subject: str
    body_html: str
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    event_id: Optional[int] = None


@dataclass(frozen=True)
class EmailSent:
    """Completion report for a SendEmail effect; error is None on success."""

    email: SendEmail
    error: Optional[str] = None


Message = Union[ClientConnected, ClientDisconnected, ClientRequest, Tick, EmailSent]


# ── Outbound ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class SendToConnection:
    connection_id: str
    response: BaseModel


Effect = Union[SendToConnection, SendEmail]
