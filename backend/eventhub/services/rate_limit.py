"""Throttling for the login and delete-account email requests.

Only in-memory tables are consulted. A rejected request is not recorded as
an attempt, so a retry after the window succeeds.
"""
from datetime import datetime, timedelta
from typing import Dict, List

from eventhub.models.tokens import PendingDelete, PendingLogin
from eventhub.services.tokens import PendingTokenTable


LOGIN_SESSION_COOLDOWN = timedelta(seconds=10)
LOGIN_EMAIL_COOLDOWN = timedelta(seconds=60)
DELETE_EMAIL_COOLDOWN = timedelta(seconds=10)
LOGIN_ATTEMPT_RETENTION = timedelta(seconds=30)


class RateLimiter:
    def __init__(self) -> None:
        self._login_attempts: Dict[str, List[datetime]] = {}

    def login_attempts(self, session_id: str) -> List[datetime]:
        return list(self._login_attempts.get(session_id, []))

    def login_rate_limited(
        self,
        session_id: str,
        email: str,
        pending_logins: PendingTokenTable[PendingLogin],
        now: datetime,
    ) -> bool:
        recent_attempt = any(
            now - attempt < LOGIN_SESSION_COOLDOWN
            for attempt in self._login_attempts.get(session_id, [])
        )
        if recent_attempt:
            return True
        return pending_logins.any_since(lambda pending: pending.email == email, now, LOGIN_EMAIL_COOLDOWN)

    def record_login_attempt(self, session_id: str, now: datetime) -> None:
        self._login_attempts.setdefault(session_id, []).append(now)

    def delete_rate_limited(
        self,
        user_id: str,
        pending_deletes: PendingTokenTable[PendingDelete],
        now: datetime,
    ) -> bool:
        return pending_deletes.any_since(lambda pending: pending.user_id == user_id, now, DELETE_EMAIL_COOLDOWN)

    def prune(self, now: datetime) -> None:
        """Drop login attempts older than the retention window."""
        for session_id in list(self._login_attempts):
            kept = [t for t in self._login_attempts[session_id] if now - t <= LOGIN_ATTEMPT_RETENTION]
            if kept:
                self._login_attempts[session_id] = kept
            else:
                del self._login_attempts[session_id]
