"""Pytest fixtures — a fresh in-memory Backend per test, driven like real clients."""
import itertools
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from eventhub.config import Settings
from eventhub.main import create_app
from eventhub.services.backend import Backend
from eventhub.services.ids import IdGenerator
from eventhub.services.mailer import EmailSender, EmailTransportError
from eventhub.services.messages import ClientConnected, ClientRequest, Effect, SendEmail, SendToConnection

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
ADMIN_EMAIL = "admin@example.com"

_LOGIN_TOKEN = re.compile(r"login-token=([0-9a-f]+)")
_DELETE_TOKEN = re.compile(r"delete-user-token=([0-9a-f]+)")


class FakeClient:
    """One browser tab: a session id plus its own connection id."""

    def __init__(self, backend: Backend, session_id: str, connection_id: str, now: datetime = NOW):
        self.backend = backend
        self.session_id = session_id
        self.connection_id = connection_id
        backend.handle(ClientConnected(session_id=session_id, connection_id=connection_id), now)

    @property
    def user_id(self) -> Optional[str]:
        return self.backend.sessions.lookup_user(self.session_id)

    def send(self, payload: Any, now: datetime = NOW) -> list[Effect]:
        return self.backend.handle(
            ClientRequest(session_id=self.session_id, connection_id=self.connection_id, payload=payload),
            now,
        )

    def received(self, effects: list[Effect]) -> list[dict]:
        """JSON payloads from ``effects`` that were addressed to this tab."""
        return [
            effect.response.model_dump(mode="json")
            for effect in effects
            if isinstance(effect, SendToConnection) and effect.connection_id == self.connection_id
        ]

    def ask(self, payload: Any, now: datetime = NOW) -> dict:
        """Send a request and return the single response this tab got."""
        replies = self.received(self.send(payload, now))
        assert len(replies) == 1, replies
        return replies[0]


def emails(effects: list[Effect]) -> list[SendEmail]:
    return [effect for effect in effects if isinstance(effect, SendEmail)]


def login_token_from(effects: list[Effect]) -> str:
    (email,) = emails(effects)
    return _LOGIN_TOKEN.search(email.body_html).group(1)


def delete_token_from(effects: list[Effect]) -> str:
    (email,) = emails(effects)
    return _DELETE_TOKEN.search(email.body_html).group(1)


class RecordingEmailSender(EmailSender):
    """Keeps every message instead of sending it; can be told to fail."""

    def __init__(self, fail_with: Optional[str] = None):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_with = fail_with

    async def send(self, to_email: str, subject: str, body_html: str) -> None:
        if self.fail_with is not None:
            raise EmailTransportError(self.fail_with)
        self.sent.append((to_email, subject, body_html))


@pytest.fixture(scope="function")
def backend():
    """Fresh backend state for each test."""
    return Backend(now=NOW - timedelta(days=7), admin_emails=[ADMIN_EMAIL], ids=IdGenerator(salt="tests"))


@pytest.fixture(scope="function")
def connect(backend):
    """Factory: open a new tab, optionally in an existing session."""
    counter = itertools.count(1)

    def _connect(session_id: Optional[str] = None) -> FakeClient:
        n = next(counter)
        return FakeClient(backend, session_id or f"session-{n}", f"conn-{n}")

    return _connect


@pytest.fixture(scope="function")
def login_as(connect):
    """Factory: open a tab and log it in through the email token flow."""

    def _login_as(email: str, session_id: Optional[str] = None, now: datetime = NOW) -> FakeClient:
        client = connect(session_id)
        token = login_token_from(client.send({"type": "get_login_token", "email": email}, now))
        reply = client.ask({"type": "login_with_token", "token": token}, now)
        assert reply["ok"] is True, reply
        return client

    return _login_as


@pytest.fixture(scope="function")
def make_group():
    """Factory: create a group as ``owner`` and return its id."""

    def _make_group(owner: FakeClient, name: str = "Run Club", visibility: str = "public", description: str = "") -> str:
        reply = owner.ask({
            "type": "create_group",
            "name": name,
            "description": description,
            "visibility": visibility,
        })
        assert reply["error"] is None, reply
        return reply["group"]["group_id"]

    return _make_group


@pytest.fixture(scope="function")
def make_event():
    """Factory: create an event as ``owner``; returns the full create_event response."""

    def _make_event(
        owner: FakeClient,
        group_id: str,
        name: str = "5k",
        start: Optional[datetime] = None,
        duration_minutes: int = 60,
        max_attendees: Optional[int] = None,
        now: datetime = NOW,
    ) -> dict:
        start = start or NOW + timedelta(hours=48)
        return owner.ask({
            "type": "create_event",
            "group_id": group_id,
            "name": name,
            "description": "",
            "event_type": "in_person",
            "address": "Riverside park",
            "start_time": start.isoformat(),
            "duration_minutes": duration_minutes,
            "max_attendees": max_attendees,
        }, now)

    return _make_event


@pytest.fixture(scope="function")
def email_sender():
    return RecordingEmailSender()


@pytest.fixture(scope="function")
def client(email_sender):
    """FastAPI TestClient around a fresh app; the ticker is effectively off."""
    settings = Settings(TICK_SECONDS=3600, ADMIN_EMAILS=ADMIN_EMAIL, PUBLIC_URL="http://testserver")
    app = create_app(settings=settings, email_sender=email_sender)
    with TestClient(app) as c:
        yield c
