"""
Session Cache - bounded in-process map of active sessions with per-session locks.
"""

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterator, Optional

from ..models.session import SessionRecord

logger = logging.getLogger(__name__)


class SessionCache:
    """
    Least-recently-used map from session id to its working copy.

    Each session id also owns an asyncio.Lock while it is cached or while a
    caller holds or waits on it. Sessions with lock users are never evicted,
    so an in-flight exchange keeps its working copy.
    """

    def __init__(self, max_sessions: int = 1000):
        if max_sessions < 1:
            raise ValueError("max_sessions must be positive")
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, SessionRecord]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Optional[SessionRecord]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def put(self, session: SessionRecord) -> SessionRecord:
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)
        self._evict()
        return session

    def pop(self, session_id: str) -> Optional[SessionRecord]:
        session = self._sessions.pop(session_id, None)
        self._release_lock_entry(session_id)
        return session

    def values(self) -> Iterator[SessionRecord]:
        return iter(list(self._sessions.values()))

    @property
    def lock_count(self) -> int:
        """Number of lock entries currently retained."""
        return len(self._locks)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold the lock serializing mutations of one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
            self._release_lock_entry(session_id)

    def _release_lock_entry(self, session_id: str) -> None:
        # Keep the lock while anyone holds or waits on it, or while it is cached
        if session_id in self._lock_users or session_id in self._sessions:
            return
        self._locks.pop(session_id, None)

    def _evict(self) -> None:
        if len(self._sessions) <= self.max_sessions:
            return
        for session_id in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                break
            if session_id in self._lock_users:
                continue
            session = self._sessions.pop(session_id)
            self._locks.pop(session_id, None)
            if not session.persisted:
                logger.debug(f"Evicted unpersisted session {session_id}")
