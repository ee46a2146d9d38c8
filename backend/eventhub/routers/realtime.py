"""Realtime transport — session cookie endpoint and the client websocket."""
import json
import logging
import secrets
from contextlib import suppress
from typing import Any

import anyio
from fastapi import APIRouter, Request, Response, WebSocket, status
from starlette.websockets import WebSocketDisconnect, WebSocketState

from eventhub.services.hub import Hub
from eventhub.services.messages import ClientRequest

logger = logging.getLogger(__name__)
router = APIRouter()

SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


async def send_websocket_json(websocket: WebSocket, payload: dict[str, Any]) -> None:
    """Send a JSON payload unless the client already went away."""
    if websocket.client_state == WebSocketState.DISCONNECTED:
        return
    with suppress(WebSocketDisconnect, RuntimeError):
        await websocket.send_json(payload)


@router.get("/api/session")
def ensure_session(request: Request, response: Response):
    """Hand out a session cookie; an existing one is kept so logins survive reloads."""
    cookie_name = request.app.state.settings.SESSION_COOKIE_NAME
    session_id = request.cookies.get(cookie_name) or secrets.token_urlsafe(24)
    response.set_cookie(
        cookie_name,
        session_id,
        max_age=SESSION_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return {"session_id": session_id}


@router.websocket("/ws")
async def client_socket(websocket: WebSocket):
    """Bridge one browser tab to the hub: requests in, responses out."""
    hub: Hub = websocket.app.state.hub
    cookie_name = websocket.app.state.settings.SESSION_COOKIE_NAME
    session_id = websocket.cookies.get(cookie_name) or websocket.query_params.get("session_id")
    if not session_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id, outbox = hub.open_connection(session_id)
    logger.info("Connection %s opened for session %s", connection_id, session_id)

    async def pump_outbox() -> None:
        while True:
            payload = await outbox.get()
            await send_websocket_json(websocket, payload)

    try:
        async with anyio.create_task_group() as task_group:
            task_group.start_soon(pump_outbox)
            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        break
                    text = message.get("text")
                    if text is None:
                        continue
                    try:
                        payload = json.loads(text)
                    except json.JSONDecodeError:
                        # Still forwarded, so the backend logs the bad payload
                        payload = text
                    hub.submit(ClientRequest(session_id=session_id, connection_id=connection_id, payload=payload))
            except WebSocketDisconnect:
                pass
            task_group.cancel_scope.cancel()
    finally:
        hub.close_connection(session_id, connection_id)
        logger.info("Connection %s closed", connection_id)
