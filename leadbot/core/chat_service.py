"""
Chat Service - runs one chat exchange against a session.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from .logging_config import LoggerAdapter
from .session_store import SessionStore
from ..errors import CompletionAuthError, CompletionError, ValidationError
from ..llm.base import LLMMessage, LLMProvider
from ..models.session import utc_now

logger = logging.getLogger(__name__)


class ChatService:
    """
    Appends the user message, asks the LLM for a reply and records it.
    The whole exchange holds the session lock, so concurrent requests for
    one session are applied one after another.
    """

    def __init__(
        self,
        session_store: SessionStore,
        llm_provider: Optional[LLMProvider] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.session_store = session_store
        self.llm_provider = llm_provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def reply(self, session_id: Optional[str], message: Optional[str]) -> Tuple[str, datetime]:
        """
        Send a user message and return the assistant reply with its timestamp.

        On completion failure the user message stays in the session and no
        assistant message is recorded.

        Raises:
            ValidationError: session_id or message missing
            CompletionError: The completion call failed
        """
        if not message or not message.strip() or not session_id:
            raise ValidationError()

        log = LoggerAdapter(logger, {"session_id": session_id})

        async with self.session_store.lock(session_id):
            session = await self.session_store.append_user_message(session_id, message)

            if self.llm_provider is None:
                raise CompletionAuthError("LLM API key is not configured")

            context = self.session_store.context_messages(session)
            try:
                response = await self.llm_provider.chat_completion(
                    LLMMessage.from_history(context),
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except CompletionError as e:
                log.error(f"Completion failed: {type(e).__name__}")
                raise

            await self.session_store.append_assistant_message(session_id, response.content)

        log.info(
            "Chat exchange completed",
            extra={"extra_fields": {"context_messages": len(context)}}
        )
        return response.content, utc_now()
