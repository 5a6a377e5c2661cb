"""
Session storage for live interviews.

`SessionStore` is the only shared mutable structure in the engine. The
interface lets the backing store be swapped (in-process map today, an
external cache later) without touching orchestration logic.

Every session has its own lock; turns of one session are linearized while
distinct sessions proceed in parallel.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

from hireloop.models.interview import InterviewSession

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Keyed store of open interview sessions."""

    @abstractmethod
    async def get(self, session_id: str) -> InterviewSession | None:
        """Return a snapshot of the session, or None."""

    @abstractmethod
    async def put(self, session: InterviewSession) -> None:
        """Insert or replace a session and mark it active."""

    @abstractmethod
    async def delete(self, session_id: str) -> InterviewSession | None:
        """Remove a session, returning it if it existed."""

    @abstractmethod
    async def touch(self, session_id: str) -> bool:
        """Refresh the idle timer. False when the session is unknown."""

    @abstractmethod
    async def purge_expired(self) -> list[str]:
        """Remove sessions idle longer than the timeout; return their ids."""

    @abstractmethod
    def lock_for(self, session_id: str) -> asyncio.Lock:
        """The mutual-exclusion lock for one session."""


class InMemorySessionStore(SessionStore):
    """
    In-process session store.

    All mutations happen on the event loop thread without intermediate
    awaits, so the map itself needs no global lock. Snapshots are deep copies;
    callers must `put` to persist changes.
    """

    def __init__(self, idle_timeout_seconds: float = 1800, clock: Callable[[], float] = time.monotonic):
        self.idle_timeout_seconds = idle_timeout_seconds
        self._clock = clock
        self._sessions: dict[str, InterviewSession] = {}
        self._last_seen: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, session_id: str) -> InterviewSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def put(self, session: InterviewSession) -> None:
        self._sessions[session.session_id] = session.model_copy(deep=True)
        self._last_seen[session.session_id] = self._clock()

    async def delete(self, session_id: str) -> InterviewSession | None:
        self._last_seen.pop(session_id, None)
        self._locks.pop(session_id, None)
        return self._sessions.pop(session_id, None)

    async def touch(self, session_id: str) -> bool:
        if session_id not in self._sessions:
            return False
        self._last_seen[session_id] = self._clock()
        return True

    async def purge_expired(self) -> list[str]:
        now = self._clock()
        expired = [
            session_id
            for session_id, seen in self._last_seen.items()
            if now - seen > self.idle_timeout_seconds
            and not self.lock_for(session_id).locked()  # Mid-turn sessions are not idle
        ]
        for session_id in expired:
            await self.delete(session_id)
        if expired:
            logger.info(f"Reclaimed {len(expired)} abandoned interview session(s)")
        return expired

    def lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock


class SessionReaper:
    """Background task that periodically reclaims abandoned sessions."""

    def __init__(self, store: SessionStore, interval_seconds: float = 60):
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.store.purge_expired()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}")
