"""End-to-end tests through the FastAPI app: HTTP endpoints and the websocket."""
import re
import time

import pytest
from starlette.websockets import WebSocketDisconnect


def _wait_for_email(email_sender, count=1, timeout=2.0):
    deadline = time.monotonic() + timeout
    while len(email_sender.sent) < count:
        assert time.monotonic() < deadline, "email was not sent"
        time.sleep(0.01)
    return email_sender.sent[count - 1]


class TestHttp:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_session_cookie_is_stable(self, client):
        first = client.get("/api/session")
        assert first.status_code == 200
        session_id = first.json()["session_id"]
        assert first.cookies.get("eventhub_session") == session_id

        assert client.get("/api/session").json()["session_id"] == session_id


class TestWebsocket:
    def test_rejected_without_session(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws"):
                pass
        assert exc.value.code == 1008

    def test_check_login_and_missing_group(self, client):
        with client.websocket_connect("/ws?session_id=tab-session") as ws:
            ws.send_json({"type": "check_login"})
            assert ws.receive_json() == {"type": "check_login", "logged_in": False, "user": None, "is_admin": False}

            ws.send_json({"type": "get_group", "group_id": "nope"})
            assert ws.receive_json() == {"type": "get_group", "group_id": "nope", "group": None, "owner": None}

    def test_garbage_is_ignored(self, client):
        with client.websocket_connect("/ws?session_id=tab-session") as ws:
            ws.send_text("{not json")
            ws.send_json({"type": "no_such_request"})
            ws.send_json({"type": "check_login"})
            assert ws.receive_json()["type"] == "check_login"

    def test_login_over_websocket(self, client, email_sender):
        session_id = client.get("/api/session").json()["session_id"]
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "get_login_token", "email": "ada@example.com"})
            to_email, _, body = _wait_for_email(email_sender)
            assert to_email == "ada@example.com"
            assert body.count("http://testserver/?login-token=") == 1
            token = re.search(r"login-token=([0-9a-f]+)", body).group(1)

            ws.send_json({"type": "login_with_token", "token": token})
            reply = ws.receive_json()
            assert reply["type"] == "login_with_token"
            assert reply["ok"] is True

        # A second tab in the same session is already logged in
        with client.websocket_connect(f"/ws?session_id={session_id}") as ws:
            ws.send_json({"type": "check_login"})
            assert ws.receive_json()["logged_in"] is True
