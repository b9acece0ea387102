"""
Conversation Analysis - Extracts structured lead information from chat transcripts.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from .session_store import SessionStore
from ..errors import CompletionAuthError, MalformedExtraction, NotFound
from ..llm.base import LLMMessage, LLMProvider
from ..models.session import Message, Role, utc_now

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Bạn là trợ lý phân tích hội thoại chăm sóc khách hàng.
Đọc đoạn hội thoại giữa khách hàng (USER) và trợ lý (ASSISTANT) và trích xuất thông tin khách hàng.

Chỉ trả về MỘT đối tượng JSON hợp lệ, không kèm giải thích, với các khóa:
{
  "customerName": string | null,
  "customerEmail": string | null,
  "customerPhone": string | null,
  "customerIndustry": string | null,
  "customerProblem": string | null,
  "customerAvailability": string | null,
  "customerConsultation": boolean,
  "specialNotes": string | null,
  "leadQuality": "hot" | "warm" | "cold"
}
customerConsultation là true nếu khách hàng đã đồng ý đặt lịch tư vấn.
Dùng null cho thông tin không được nhắc đến. Không bịa thông tin."""

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*|\s*```$")


def build_transcript(messages: Iterable[Message]) -> str:
    """
    Render non-system messages as "ROLE: content" lines, in order.

    Args:
        messages: Session messages

    Returns:
        Newline-joined transcript
    """
    return "\n".join(
        f"{m.role.value.upper()}: {m.content}"
        for m in messages
        if m.role != Role.SYSTEM
    )


def parse_extraction(text: str) -> Dict[str, Any]:
    """
    Parse the model output as a JSON object.

    Tries the whole text first, then the trailing brace-delimited block
    (prose or code fences around the JSON are common).

    Raises:
        MalformedExtraction: No JSON object could be recovered
    """
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except (json.JSONDecodeError, TypeError):
        pass

    stripped = _CODE_FENCE.sub("", (text or "").strip())
    end = stripped.rfind("}")
    start = stripped.rfind("{", 0, end + 1) if end != -1 else -1
    # Walk outwards until the block starting at an earlier "{" parses
    while start != -1:
        try:
            data = json.loads(stripped[start:end + 1])
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass
        start = stripped.rfind("{", 0, start)

    raise MalformedExtraction(raw_text=text or "")


class AnalysisPipeline:
    """
    Runs lead extraction over the authoritative session record and stores
    the result on it. Each run overwrites the previous analysis.
    """

    def __init__(
        self,
        session_store: SessionStore,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 800,
    ):
        """
        Args:
            session_store: Session store (gives access to the durable store and locks)
            llm_provider: Completion provider; None when no API key is configured
            model: Model override for extraction requests
            temperature: Sampling temperature for extraction
            max_tokens: Max tokens for the extraction response
        """
        self.session_store = session_store
        self.record_store = session_store.record_store
        self.llm_provider = llm_provider
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def analyze(self, session_id: str) -> Tuple[Dict[str, Any], datetime]:
        """
        Extract and persist the structured analysis for a session.

        Returns:
            The stored analysis and the time it was produced

        Raises:
            NotFound: No stored messages for the session
            MalformedExtraction: Model output was not a JSON object
            CompletionError: The completion call failed
            StoreUnavailable: The durable store failed
        """
        async with self.session_store.lock(session_id):
            record = await self.record_store.get(session_id)
            transcript = build_transcript(record.messages) if record is not None else ""
            if not transcript:
                raise NotFound(f"No messages to analyze for session {session_id}")

            if self.llm_provider is None:
                raise CompletionAuthError("LLM API key is not configured")

            response = await self.llm_provider.chat_completion(
                [
                    LLMMessage.text("system", EXTRACTION_PROMPT),
                    LLMMessage.text("user", transcript),
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                model=self.model,
                response_format={"type": "json_object"},
            )

            try:
                analysis = parse_extraction(response.content)
            except MalformedExtraction:
                logger.error(
                    f"Analysis output for session {session_id} is not valid JSON",
                    extra={"extra_fields": {
                        "session_id": session_id,
                        "raw": response.content[:2000],
                    }}
                )
                raise

            analyzed_at = utc_now()
            record.analysis = analysis
            record.analyzed_at = analyzed_at
            await self.record_store.upsert(record)
            self.session_store.remember_analysis(session_id, analysis, analyzed_at)

        logger.info(
            f"Session analyzed: {session_id}",
            extra={"extra_fields": {
                "session_id": session_id,
                "lead_quality": analysis.get("leadQuality"),
            }}
        )
        return analysis, analyzed_at

    async def get_analysis(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Last stored analysis, or None. Never computes."""
        record = await self.record_store.get(session_id)
        return record.analysis if record is not None else None

    async def get_analysis_record(self, session_id: str) -> Tuple[Optional[Dict[str, Any]], Optional[datetime]]:
        """Last stored analysis together with its timestamp."""
        record = await self.record_store.get(session_id)
        if record is None:
            return None, None
        return record.analysis, record.analyzed_at
