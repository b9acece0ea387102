"""
Tests for transcript rendering, extraction parsing and the analysis pipeline.
"""

import json

import pytest

from leadbot.core import AnalysisPipeline, SessionCache, SessionStore, build_transcript, parse_extraction
from leadbot.core.analysis import EXTRACTION_PROMPT
from leadbot.errors import CompletionQuotaExceeded, MalformedExtraction, NotFound
from leadbot.models.session import Message, SessionRecord

from conftest import SYSTEM_PROMPT, StubProvider

VIETNAMESE_RESULT = {
    "customerName": None,
    "customerPhone": "0901234567",
    "customerIndustry": "bất động sản",
    "customerProblem": "cần hỗ trợ",
    "customerConsultation": False,
    "leadQuality": "warm",
}


async def _stored_conversation(record_store, session_id="lead"):
    await record_store.upsert(SessionRecord(
        session_id=session_id,
        messages=[
            Message.system("sys"),
            Message.user("Tôi cần hỗ trợ"),
            Message.assistant("Vâng, tôi có thể giúp gì?"),
        ],
    ))


class TestBuildTranscript:

    def test_skips_system_and_prefixes_roles(self):
        transcript = build_transcript([
            Message.system("secret instructions"),
            Message.user("Hello"),
            Message.assistant("Hi there"),
        ])
        assert transcript == "USER: Hello\nASSISTANT: Hi there"

    def test_empty_conversation(self):
        assert build_transcript([Message.system("only")]) == ""


class TestParseExtraction:

    def test_plain_json(self):
        assert parse_extraction('{"leadQuality": "hot"}') == {"leadQuality": "hot"}

    def test_recovers_trailing_object_after_prose(self):
        text = 'Here is the result:\n{"customerName": "An", "specialNotes": {"budget": 5}}'
        assert parse_extraction(text) == {"customerName": "An", "specialNotes": {"budget": 5}}

    def test_recovers_from_code_fence(self):
        text = '```json\n{"customerPhone": "0901234567"}\n```'
        assert parse_extraction(text) == {"customerPhone": "0901234567"}

    def test_non_object_json_is_malformed(self):
        with pytest.raises(MalformedExtraction):
            parse_extraction('["not", "an", "object"]')

    def test_garbage_keeps_raw_text(self):
        with pytest.raises(MalformedExtraction) as exc_info:
            parse_extraction("I could not find any customer data.")
        assert exc_info.value.raw_text == "I could not find any customer data."


class TestAnalysisPipeline:

    @pytest.mark.asyncio
    async def test_analyze_persists_result(self, session_store, record_store):
        await _stored_conversation(record_store)
        provider = StubProvider([json.dumps(VIETNAMESE_RESULT, ensure_ascii=False)])
        pipeline = AnalysisPipeline(session_store, provider)

        result, result_at = await pipeline.analyze("lead")

        assert result == VIETNAMESE_RESULT
        assert await pipeline.get_analysis("lead") == VIETNAMESE_RESULT
        analysis, analyzed_at = await pipeline.get_analysis_record("lead")
        assert analysis == VIETNAMESE_RESULT
        assert analyzed_at == result_at

    @pytest.mark.asyncio
    async def test_request_contains_instruction_and_transcript(self, session_store, record_store):
        await _stored_conversation(record_store)
        provider = StubProvider(['{"leadQuality": "warm"}'])
        pipeline = AnalysisPipeline(session_store, provider, model="extractor")

        await pipeline.analyze("lead")

        call = provider.calls[0]
        assert call["messages"][0].role == "system"
        assert call["messages"][0].content == EXTRACTION_PROMPT
        assert call["messages"][1].content == "USER: Tôi cần hỗ trợ\nASSISTANT: Vâng, tôi có thể giúp gì?"
        assert call["kwargs"]["response_format"] == {"type": "json_object"}
        assert call["kwargs"]["model"] == "extractor"

    @pytest.mark.asyncio
    async def test_repeated_analysis_overwrites(self, session_store, record_store):
        await _stored_conversation(record_store)
        provider = StubProvider(['{"leadQuality": "cold"}', '{"leadQuality": "hot"}'])
        pipeline = AnalysisPipeline(session_store, provider)

        await pipeline.analyze("lead")
        _, first_at = await pipeline.get_analysis_record("lead")
        await pipeline.analyze("lead")
        analysis, second_at = await pipeline.get_analysis_record("lead")

        assert analysis == {"leadQuality": "hot"}
        assert second_at >= first_at

    @pytest.mark.asyncio
    async def test_analysis_reads_durable_record_not_cache(self, session_store, record_store):
        await _stored_conversation(record_store)
        await session_store.get_or_create("lead")
        await session_store.append_user_message("lead", "unsaved question")
        provider = StubProvider(['{"leadQuality": "warm"}'])

        await AnalysisPipeline(session_store, provider).analyze("lead")

        assert "unsaved question" not in provider.calls[0]["messages"][1].content

    @pytest.mark.asyncio
    async def test_cached_copy_keeps_analysis_for_next_persist(self, session_store, record_store):
        await _stored_conversation(record_store)
        await session_store.get_or_create("lead")
        provider = StubProvider(['{"leadQuality": "hot"}'])
        await AnalysisPipeline(session_store, provider).analyze("lead")

        await session_store.append_user_message("lead", "one more")
        await session_store.append_assistant_message("lead", "sure")

        stored = await record_store.get("lead")
        assert stored.analysis == {"leadQuality": "hot"}
        assert stored.analyzed_at is not None

    @pytest.mark.asyncio
    async def test_unknown_session_not_found(self, session_store):
        pipeline = AnalysisPipeline(session_store, StubProvider())
        with pytest.raises(NotFound):
            await pipeline.analyze("missing")

    @pytest.mark.asyncio
    async def test_system_only_session_not_found(self, session_store, record_store):
        await record_store.upsert(SessionRecord(session_id="empty", messages=[Message.system("s")]))
        pipeline = AnalysisPipeline(session_store, StubProvider())
        with pytest.raises(NotFound):
            await pipeline.analyze("empty")

    @pytest.mark.asyncio
    async def test_malformed_output_stores_nothing(self, session_store, record_store):
        await _stored_conversation(record_store)
        pipeline = AnalysisPipeline(session_store, StubProvider(["no json here"]))

        with pytest.raises(MalformedExtraction) as exc_info:
            await pipeline.analyze("lead")

        assert exc_info.value.raw_text == "no json here"
        assert await pipeline.get_analysis("lead") is None

    @pytest.mark.asyncio
    async def test_completion_error_propagates(self, session_store, record_store):
        await _stored_conversation(record_store)
        provider = StubProvider()
        provider.fail_with(CompletionQuotaExceeded())
        with pytest.raises(CompletionQuotaExceeded):
            await AnalysisPipeline(session_store, provider).analyze("lead")

    @pytest.mark.asyncio
    async def test_get_analysis_never_computes(self, session_store, record_store):
        await _stored_conversation(record_store)
        provider = StubProvider()
        pipeline = AnalysisPipeline(session_store, provider)
        assert await pipeline.get_analysis("lead") is None
        assert await pipeline.get_analysis("missing") is None
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unknown_session_leaves_no_lock(self, record_store):
        cache = SessionCache()
        store = SessionStore(record_store, system_prompt=SYSTEM_PROMPT, cache=cache)
        pipeline = AnalysisPipeline(store, StubProvider())
        for i in range(20):
            with pytest.raises(NotFound):
                await pipeline.analyze(f"missing-{i}")
        assert cache.lock_count == 0


class TestExtractionPrompt:

    @pytest.mark.parametrize("key", [
        "customerName",
        "customerEmail",
        "customerPhone",
        "customerIndustry",
        "customerProblem",
        "customerAvailability",
        "customerConsultation",
        "specialNotes",
        "leadQuality",
    ])
    def test_requests_dashboard_fields(self, key):
        assert f'"{key}"' in EXTRACTION_PROMPT

    @pytest.mark.parametrize("key", ["phone", "email", "availability", "appointmentScheduled", "notes"])
    def test_no_legacy_field_names(self, key):
        assert f'"{key}"' not in EXTRACTION_PROMPT
