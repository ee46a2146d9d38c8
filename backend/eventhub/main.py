"""FastAPI application entry point."""
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventhub.config import Settings, settings as default_settings
from eventhub.routers import realtime
from eventhub.services.backend import Backend
from eventhub.services.hub import Hub
from eventhub.services.mailer import EmailSender, build_email_sender


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_app(
    settings: Optional[Settings] = None,
    email_sender: Optional[EmailSender] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> FastAPI:
    """Build the app with its own backend state and processing loop."""
    settings = settings or default_settings

    app = FastAPI(
        title="EventHub",
        description="Group and event coordination backend — groups, events, attendees and email logins",
        version="0.1.0",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    backend = Backend.from_settings(settings, clock())
    app.state.settings = settings
    app.state.hub = Hub(
        backend,
        email_sender or build_email_sender(settings),
        tick_seconds=settings.TICK_SECONDS,
        clock=clock,
    )

    app.include_router(realtime.router, tags=["Realtime"])

    @app.on_event("startup")
    async def on_startup():
        """Start the sequential processing loop and its timer."""
        await app.state.hub.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.hub.stop()

    @app.get("/api/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
