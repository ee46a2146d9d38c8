"""Tests for the sequential processing loop."""
import asyncio

from eventhub.models.log import LogKind
from eventhub.services.backend import Backend
from eventhub.services.hub import Hub
from eventhub.services.ids import IdGenerator
from eventhub.services.messages import ClientRequest
from tests.conftest import NOW, RecordingEmailSender


async def _wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


def _run_hub(sender, scenario):
    async def main():
        backend = Backend(now=NOW, ids=IdGenerator(salt="hub"))
        hub = Hub(backend, sender, tick_seconds=3600, clock=lambda: NOW)
        await hub.start()
        try:
            return await scenario(hub, backend)
        finally:
            await hub.stop()

    return asyncio.run(main())


class TestHub:
    def test_response_reaches_outbox(self):
        async def scenario(hub, backend):
            connection_id, outbox = hub.open_connection("s1")
            hub.submit(ClientRequest(session_id="s1", connection_id=connection_id, payload={"type": "check_login"}))
            return await asyncio.wait_for(outbox.get(), timeout=2)

        reply = _run_hub(RecordingEmailSender(), scenario)
        assert reply == {"type": "check_login", "logged_in": False, "user": None, "is_admin": False}

    def test_email_delivered_and_recorded(self):
        sender = RecordingEmailSender()

        async def scenario(hub, backend):
            connection_id, _ = hub.open_connection("s1")
            hub.submit(ClientRequest(
                session_id="s1",
                connection_id=connection_id,
                payload={"type": "get_login_token", "email": "ada@example.com"},
            ))
            await _wait_for(lambda: any(e.kind == LogKind.login_email for e in backend.logs))
            return backend.logs

        logs = _run_hub(sender, scenario)
        assert [to for to, _, _ in sender.sent] == ["ada@example.com"]
        assert logs[-1].success is True

    def test_email_failure_recorded(self):
        async def scenario(hub, backend):
            connection_id, _ = hub.open_connection("s1")
            hub.submit(ClientRequest(
                session_id="s1",
                connection_id=connection_id,
                payload={"type": "get_login_token", "email": "ada@example.com"},
            ))
            await _wait_for(lambda: any(e.kind == LogKind.login_email for e in backend.logs))
            return backend.logs[-1]

        entry = _run_hub(RecordingEmailSender(fail_with="connection refused"), scenario)
        assert entry.success is False
        assert entry.message == "connection refused"

    def test_closed_connection_is_skipped(self):
        async def scenario(hub, backend):
            connection_id, outbox = hub.open_connection("s1")
            hub.close_connection("s1", connection_id)
            hub.submit(ClientRequest(session_id="s1", connection_id=connection_id, payload={"type": "check_login"}))
            other_id, other_outbox = hub.open_connection("s2")
            hub.submit(ClientRequest(session_id="s2", connection_id=other_id, payload={"type": "check_login"}))
            await asyncio.wait_for(other_outbox.get(), timeout=2)
            return outbox.empty()

        assert _run_hub(RecordingEmailSender(), scenario) is True
