"""Sequential processing loop around the Backend.

All inbound traffic (client requests, connects/disconnects, timer ticks,
email completions) goes through one asyncio queue and is handled by a
single task, one message at a time. Nothing else reads or writes backend
state. Pushes to clients land in per-connection outboxes; emails run as
background tasks that report back through the same queue.
"""
import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Set

from eventhub.services.backend import Backend
from eventhub.services.mailer import EmailSender, EmailTransportError
from eventhub.services.messages import (
    ClientConnected,
    ClientDisconnected,
    Effect,
    EmailSent,
    Message,
    SendEmail,
    SendToConnection,
    Tick,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Hub:
    def __init__(
        self,
        backend: Backend,
        email_sender: EmailSender,
        *,
        tick_seconds: float = 5.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.backend = backend
        self.email_sender = email_sender
        self.tick_seconds = tick_seconds
        self._clock = clock
        self._inbox: Optional["asyncio.Queue[Message]"] = None
        self._outboxes: Dict[str, "asyncio.Queue[dict[str, Any]]"] = {}
        self._email_tasks: Set[asyncio.Task] = set()
        self._runner: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None

    async def start(self) -> None:
        self._inbox = asyncio.Queue()
        self._runner = asyncio.create_task(self._run())
        self._ticker = asyncio.create_task(self._tick_forever())
        logger.info("Hub started (tick every %.1fs)", self.tick_seconds)

    async def stop(self) -> None:
        tasks = [t for t in (self._runner, self._ticker, *self._email_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._runner = self._ticker = None
        logger.info("Hub stopped")

    def submit(self, message: Message) -> None:
        if self._inbox is None:
            raise RuntimeError("Hub is not running")
        self._inbox.put_nowait(message)

    def open_connection(self, session_id: str) -> tuple[str, "asyncio.Queue[dict[str, Any]]"]:
        connection_id = secrets.token_urlsafe(12)
        outbox: "asyncio.Queue[dict[str, Any]]" = asyncio.Queue()
        self._outboxes[connection_id] = outbox
        self.submit(ClientConnected(session_id=session_id, connection_id=connection_id))
        return connection_id, outbox

    def close_connection(self, session_id: str, connection_id: str) -> None:
        self._outboxes.pop(connection_id, None)
        self.submit(ClientDisconnected(session_id=session_id, connection_id=connection_id))

    async def _run(self) -> None:
        assert self._inbox is not None
        while True:
            message = await self._inbox.get()
            try:
                effects = self.backend.handle(message, self._clock())
            except Exception:
                logger.exception("Backend failed to handle %s", type(message).__name__)
                continue
            self._run_effects(effects)

    def _run_effects(self, effects: list[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, SendToConnection):
                outbox = self._outboxes.get(effect.connection_id)
                if outbox is None:
                    logger.debug("Dropping %s for closed connection %s", effect.response, effect.connection_id)
                    continue
                outbox.put_nowait(effect.response.model_dump(mode="json"))
            elif isinstance(effect, SendEmail):
                task = asyncio.create_task(self._deliver(effect))
                self._email_tasks.add(task)
                task.add_done_callback(self._email_tasks.discard)

    async def _deliver(self, email: SendEmail) -> None:
        try:
            await self.email_sender.send(email.to_email, email.subject, email.body_html)
        except EmailTransportError as exc:
            self.submit(EmailSent(email=email, error=str(exc) or "transport error"))
            return
        except Exception as exc:
            logger.exception("Unexpected error while sending %s email", email.kind.value)
            self.submit(EmailSent(email=email, error=repr(exc)))
            return
        self.submit(EmailSent(email=email))

    async def _tick_forever(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.submit(Tick())
