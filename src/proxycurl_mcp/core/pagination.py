"""Per-session next-page cursors for paged searches."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional

import anyio


@dataclass(frozen=True)
class PaginationCursor:
    session_id: str
    url: Optional[str]
    created_at: datetime


class PaginationCursorStore:
    """
    One cursor slot per session.

    get/set/reset/clear_on_failure are plain (non-awaiting) operations, so each
    one is atomic on the event loop. Multi-step sequences that await network
    calls in between must run inside `locked(session_id)`.
    """

    def __init__(self) -> None:
        self._cursors: Dict[str, PaginationCursor] = {}
        self._locks: Dict[str, anyio.Lock] = {}

    def _lock_for(self, session_id: str) -> anyio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = anyio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[None]:
        """Serialize read/modify/write sequences for one session only."""
        async with self._lock_for(session_id):
            yield

    def _write(self, session_id: str, url: Optional[str]) -> None:
        self._cursors[session_id] = PaginationCursor(
            session_id=session_id,
            url=url,
            created_at=datetime.now(timezone.utc),
        )

    def reset(self, session_id: str) -> None:
        self._write(session_id, None)

    def get(self, session_id: str) -> Optional[str]:
        cursor = self._cursors.get(session_id)
        return cursor.url if cursor else None

    def cursor(self, session_id: str) -> Optional[PaginationCursor]:
        return self._cursors.get(session_id)

    def set(self, session_id: str, url: Optional[str]) -> None:
        self._write(session_id, url or None)

    def clear_on_failure(self, session_id: str) -> None:
        self._write(session_id, None)

    def discard(self, session_id: str) -> None:
        """Forget a finished session. Must not be called while it is locked."""
        self._cursors.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            self._locks.pop(session_id, None)


__all__ = ["PaginationCursor", "PaginationCursorStore"]
