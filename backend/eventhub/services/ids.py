"""Opaque id and token generation.

Every id mixes a process-wide counter with the current timestamp, so two
processes that restart with the same counter seed still diverge.
"""
import hashlib
import secrets
from datetime import datetime
from typing import Callable

SHORT_ID_LENGTH = 12


class IdGenerator:
    def __init__(self, counter: int = 0, salt: str | None = None):
        self.counter = counter
        self._salt = salt if salt is not None else secrets.token_hex(16)

    def _digest(self, now: datetime) -> str:
        self.counter += 1
        millis = int(now.timestamp() * 1000)
        raw = f"{self.counter}:{millis}:{self._salt}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def token(self, now: datetime) -> str:
        """Full-width id for login and delete-account tokens."""
        return self._digest(now)

    def unique_token(self, now: datetime, exists: Callable[[str], bool]) -> str:
        token = self.token(now)
        while exists(token):
            token = self.token(now)
        return token

    def short_id(self, now: datetime, exists: Callable[[str], bool]) -> str:
        """Short id for users and groups; loops until a free slot is found."""
        candidate = self._digest(now)[:SHORT_ID_LENGTH]
        while exists(candidate):
            candidate = self._digest(now)[:SHORT_ID_LENGTH]
        return candidate
