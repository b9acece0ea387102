"""
Session Store - owns session lifecycle.
Mediates between the in-process cache and the durable record store and
applies the history window whenever a reply is recorded.
"""

import logging
import random
import time
from typing import AsyncContextManager, List, Optional, Dict, Any
from datetime import datetime

from .history_window import trim, DEFAULT_HISTORY_LIMIT
from .session_cache import SessionCache
from ..errors import NotFound, StoreUnavailable, ValidationError
from ..models.session import Message, Role, SessionRecord, SessionSummary
from ..storage import SessionRecordStore

logger = logging.getLogger(__name__)

PERSISTENCE_MODES = ("lazy", "eager")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            break
    return "".join(reversed(digits))


def generate_session_id() -> str:
    """Timestamp-derived id with a random suffix. Opaque; not a credential."""
    return _to_base36(int(time.time() * 1000)) + _to_base36(random.getrandbits(52))


class SessionStore:
    """
    Session lifecycle manager.

    The durable store is authoritative; the cache is a working copy. New
    sessions are created lazily on first access. In "lazy" mode they reach the
    durable store with the first recorded reply, in "eager" mode immediately.
    """

    def __init__(
        self,
        record_store: SessionRecordStore,
        system_prompt: str,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        persistence_mode: str = "lazy",
        cache: Optional[SessionCache] = None,
    ):
        """
        Args:
            record_store: Durable store implementation
            system_prompt: Instructions placed first in every new session
            history_limit: Maximum stored messages, system message included
            persistence_mode: "lazy" or "eager"
            cache: Optional preconfigured cache
        """
        if persistence_mode not in PERSISTENCE_MODES:
            raise ValueError(f"Unsupported persistence mode: {persistence_mode}")
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")

        self.record_store = record_store
        self.system_prompt = system_prompt
        self.history_limit = history_limit
        self.persistence_mode = persistence_mode
        self._cache = cache or SessionCache()

    def lock(self, session_id: str) -> AsyncContextManager[None]:
        """
        Context manager serializing mutations of one session.

        Usage:
            async with store.lock(session_id):
                ...
        """
        return self._cache.lock(session_id)

    def _new_session(self, session_id: str) -> SessionRecord:
        return SessionRecord(
            session_id=session_id,
            messages=[Message.system(self.system_prompt)],
        )

    def _ensure_system_message(self, session: SessionRecord) -> SessionRecord:
        """Restore the system prompt on records that lost it."""
        if not session.messages or session.messages[0].role != Role.SYSTEM:
            logger.warning(
                f"Session {session.session_id} had no leading system message, restoring it"
            )
            session.messages = [m for m in session.messages if m.role != Role.SYSTEM]
            session.messages.insert(0, Message.system(self.system_prompt))
        return session

    async def get_or_create(self, session_id: str) -> SessionRecord:
        """
        Return the session for an id, loading or creating it as needed.

        Absence is not an error: an unknown id creates a new session holding
        only the system message.

        Raises:
            StoreUnavailable: The durable store could not be read and no
                cached copy exists
        """
        if not session_id:
            raise ValidationError("sessionId is required")

        session = self._cache.get(session_id)
        if session is not None:
            return session

        try:
            stored = await self.record_store.get(session_id)
        except StoreUnavailable as e:
            session = self._cache.get(session_id)
            if session is not None:
                return session
            logger.warning(
                f"Store unavailable while loading session {session_id}: {e}",
                extra={"extra_fields": {"session_id": session_id, "error": str(e)}}
            )
            raise

        # Another request may have populated the cache while we were waiting
        session = self._cache.get(session_id)
        if session is not None:
            return session

        if stored is not None:
            return self._cache.put(self._ensure_system_message(stored))

        session = self._cache.put(self._new_session(session_id))
        logger.info(f"Session created: {session_id}")
        if self.persistence_mode == "eager":
            await self._persist(session)
        return session

    async def create_session(self) -> SessionRecord:
        """Create a session under a freshly generated id."""
        return await self.get_or_create(generate_session_id())

    async def append_user_message(self, session_id: str, content: str) -> SessionRecord:
        """Append a user message. Does not call the LLM or persist."""
        if not content:
            raise ValidationError("Message content is required")
        session = await self.get_or_create(session_id)
        session.messages.append(Message.user(content))
        session.touch()
        return session

    async def append_assistant_message(self, session_id: str, content: str) -> SessionRecord:
        """Append an assistant reply, apply the history window and persist."""
        session = await self.get_or_create(session_id)
        session.messages.append(Message.assistant(content))
        session.messages = trim(session.messages, self.history_limit)
        session.touch()
        await self._persist(session)
        return session

    def context_messages(self, session: SessionRecord) -> List[Message]:
        """Messages to send to the LLM for the next reply."""
        return trim(session.messages, self.history_limit)

    async def delete(self, session_id: str) -> None:
        """Remove a session from cache and durable store. Idempotent."""
        async with self.lock(session_id):
            self._cache.pop(session_id)
            removed = await self.record_store.delete(session_id)
        logger.info(
            f"Session deleted: {session_id}",
            extra={"extra_fields": {"session_id": session_id, "had_record": removed}}
        )

    async def list(self) -> List[SessionSummary]:
        """Summaries of all known sessions, newest first."""
        summaries: Dict[str, SessionSummary] = {}
        try:
            for record in await self.record_store.list_recent():
                summaries[record.session_id] = record.summary()
        except StoreUnavailable as e:
            logger.warning(f"Store unavailable while listing sessions, using cache only: {e}")

        # Cached copies may be ahead of their durable records
        for session in self._cache.values():
            summaries[session.session_id] = session.summary()

        return sorted(summaries.values(), key=lambda s: s.created_at, reverse=True)

    async def get_history(self, session_id: str, create: bool = True) -> List[Message]:
        """
        Non-system messages of a session, in order.

        Args:
            session_id: Session identifier
            create: Create the session when unknown instead of raising NotFound
        """
        session = await self.get_session(session_id, create=create)
        return session.history()

    async def get_session(self, session_id: str, create: bool = True) -> SessionRecord:
        """Return the session record, optionally without creating it."""
        if create:
            return await self.get_or_create(session_id)

        session = self._cache.get(session_id)
        if session is None:
            session = await self.record_store.get(session_id)
        if session is None:
            raise NotFound()
        return session

    def remember_analysis(
        self,
        session_id: str,
        analysis: Dict[str, Any],
        analyzed_at: datetime,
    ) -> None:
        """Mirror a persisted analysis into the cached copy, if any."""
        session = self._cache.get(session_id)
        if session is not None:
            session.analysis = analysis
            session.analyzed_at = analyzed_at

    async def _persist(self, session: SessionRecord) -> None:
        """Best-effort write; failures degrade to cache-only consistency."""
        try:
            await self.record_store.upsert(session)
            session.persisted = True
        except StoreUnavailable as e:
            logger.warning(
                f"Failed to persist session {session.session_id}: {e}",
                extra={"extra_fields": {
                    "session_id": session.session_id,
                    "message_count": len(session.messages),
                    "error": str(e),
                }}
            )
