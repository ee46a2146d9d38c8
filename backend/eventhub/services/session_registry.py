"""In-memory session and connection bookkeeping.

A session is one browser persistence unit and is bound to at most one user;
a user may have any number of sessions. Each session may hold several live
connections (one per tab). The forward and reverse maps are only touched
through this class so they cannot drift apart.
"""
import logging
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Bind sessions to users and track the live connections of each session."""

    def __init__(self) -> None:
        self._session_user: Dict[str, str] = {}
        self._user_sessions: Dict[str, Set[str]] = {}
        self._connections: Dict[str, Set[str]] = {}

    def bind_session(self, session_id: str, user_id: str) -> None:
        previous = self._session_user.get(session_id)
        if previous == user_id:
            return
        if previous is not None:
            self._drop_reverse(session_id, previous)
        self._session_user[session_id] = user_id
        self._user_sessions.setdefault(user_id, set()).add(session_id)
        logger.info("Session %s bound to user %s", session_id, user_id)

    def unbind_session(self, session_id: str) -> Optional[str]:
        user_id = self._session_user.pop(session_id, None)
        if user_id is not None:
            self._drop_reverse(session_id, user_id)
            logger.info("Session %s unbound from user %s", session_id, user_id)
        return user_id

    def unbind_user(self, user_id: str) -> Set[str]:
        """Unbind every session of a user and return the affected session ids."""
        sessions = self._user_sessions.pop(user_id, set())
        for session_id in sessions:
            self._session_user.pop(session_id, None)
        return sessions

    def _drop_reverse(self, session_id: str, user_id: str) -> None:
        sessions = self._user_sessions.get(user_id)
        if sessions is None:
            return
        sessions.discard(session_id)
        if not sessions:
            del self._user_sessions[user_id]

    def add_connection(self, session_id: str, connection_id: str) -> None:
        self._connections.setdefault(session_id, set()).add(connection_id)

    def remove_connection(self, session_id: str, connection_id: str) -> None:
        # The session entry stays, even when empty, so a reconnect keeps its login
        self._connections.get(session_id, set()).discard(connection_id)

    def lookup_user(self, session_id: str) -> Optional[str]:
        return self._session_user.get(session_id)

    def sessions_for(self, user_id: str) -> Set[str]:
        return set(self._user_sessions.get(user_id, set()))

    def session_connections(self, session_id: str) -> Set[str]:
        return set(self._connections.get(session_id, set()))

    def connections_for(self, user_id: str) -> Set[str]:
        """Every live connection across every session bound to the user."""
        connections: Set[str] = set()
        for session_id in self._user_sessions.get(user_id, set()):
            connections |= self._connections.get(session_id, set())
        return connections
