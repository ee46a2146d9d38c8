"""Tables of pending single-use tokens."""
from datetime import datetime, timedelta
from typing import Callable, Dict, Generic, Optional, TypeVar

from eventhub.models.tokens import PendingDelete, PendingLogin

T = TypeVar("T", PendingLogin, PendingDelete)


class PendingTokenTable(Generic[T]):
    """Token -> pending record. Consuming a token always removes it."""

    def __init__(self) -> None:
        self._pending: Dict[str, T] = {}

    def __contains__(self, token: str) -> bool:
        return token in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def issue(self, token: str, record: T) -> None:
        self._pending[token] = record

    def consume(self, token: str) -> Optional[T]:
        """Look up and remove in one step, whether or not the record is still valid."""
        return self._pending.pop(token, None)

    def any_since(self, predicate: Callable[[T], bool], now: datetime, within: timedelta) -> bool:
        return any(
            predicate(record) and now - record.created_at < within
            for record in self._pending.values()
        )

    def prune(self, now: datetime, ttl: timedelta) -> int:
        expired = [token for token, record in self._pending.items() if now - record.created_at > ttl]
        for token in expired:
            del self._pending[token]
        return len(expired)
