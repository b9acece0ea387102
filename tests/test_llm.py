"""
Unit tests for the LLM module.
Tests LLMMessage, LLMResponse, the OpenAI provider and its error mapping, and the factory.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, patch, MagicMock

from leadbot.errors import (
    CompletionAuthError,
    CompletionQuotaExceeded,
    CompletionTransientError,
)
from leadbot.llm.base import LLMMessage, LLMResponse
from leadbot.llm.openai_provider import OpenAIProvider, classify_http_error
from leadbot.llm.factory import create_llm_provider
from leadbot.models.session import Message


def _mock_client(mock_client, response=None, side_effect=None):
    mock_instance = AsyncMock()
    if side_effect is not None:
        mock_instance.post.side_effect = side_effect
    else:
        mock_instance.post.return_value = response
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return mock_instance


def _response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


class TestLLMMessage:
    """Tests for LLMMessage dataclass."""

    def test_text_message(self):
        msg = LLMMessage.text("user", "Hello")
        assert msg.role == "user"
        assert msg.content == "Hello"

    def test_from_history(self):
        messages = LLMMessage.from_history([
            Message.system("sys"),
            Message.user("hi"),
            Message.assistant("hello"),
        ])
        assert [m.role for m in messages] == ["system", "user", "assistant"]
        assert messages[1].content == "hi"


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_basic_response(self):
        resp = LLMResponse(content="Hello!", model="gpt-4.1-mini")
        assert resp.content == "Hello!"
        assert resp.usage == {}
        assert resp.raw is None


class TestClassifyHttpError:
    """Vendor error payloads map onto the completion error taxonomy."""

    def test_insufficient_quota(self):
        body = {"error": {"code": "insufficient_quota", "message": "quota"}}
        assert isinstance(classify_http_error(429, body), CompletionQuotaExceeded)

    def test_invalid_api_key_code(self):
        body = {"error": {"code": "invalid_api_key"}}
        assert isinstance(classify_http_error(400, body), CompletionAuthError)

    def test_unauthorized_status(self):
        assert isinstance(classify_http_error(401, None), CompletionAuthError)

    def test_rate_limit_is_transient(self):
        body = {"error": {"code": "rate_limit_exceeded"}}
        assert isinstance(classify_http_error(429, body), CompletionTransientError)

    def test_server_error_is_transient(self):
        assert isinstance(classify_http_error(500, "oops"), CompletionTransientError)


class TestOpenAIProvider:
    """Tests for OpenAI-compatible provider."""

    def test_init_defaults(self):
        provider = OpenAIProvider(api_key="test-key")
        assert provider.model == "gpt-4.1-mini"
        assert provider.base_url == "https://api.openai.com/v1"
        assert provider.default_max_tokens == 500

    def test_format_messages(self):
        provider = OpenAIProvider(api_key="test")
        formatted = provider._format_messages([
            LLMMessage.text("system", "sys prompt"),
            LLMMessage.text("user", "hello"),
        ])
        assert formatted == [
            {"role": "system", "content": "sys prompt"},
            {"role": "user", "content": "hello"},
        ]

    def test_headers(self):
        provider = OpenAIProvider(api_key="sk-test123")
        headers = provider._get_headers()
        assert headers["Authorization"] == "Bearer sk-test123"

    @pytest.mark.asyncio
    async def test_chat_completion_success(self):
        provider = OpenAIProvider(api_key="test-key")
        body = {
            "choices": [{"message": {"content": "Xin chào"}}],
            "model": "gpt-4.1-mini",
            "usage": {"prompt_tokens": 10, "completion_tokens": 5},
        }
        with patch("httpx.AsyncClient") as mock_client:
            instance = _mock_client(mock_client, _response(200, body))
            result = await provider.chat_completion(
                [LLMMessage.text("user", "Hello")],
                response_format={"type": "json_object"},
            )

        assert result.content == "Xin chào"
        assert result.usage["prompt_tokens"] == 10
        payload = instance.post.call_args.kwargs["json"]
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["max_tokens"] == 500

    @pytest.mark.asyncio
    async def test_chat_completion_quota_error(self):
        provider = OpenAIProvider(api_key="test-key")
        body = {"error": {"code": "insufficient_quota", "message": "no credit"}}
        with patch("httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, _response(429, body))
            with pytest.raises(CompletionQuotaExceeded):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])

    @pytest.mark.asyncio
    async def test_chat_completion_auth_error(self):
        provider = OpenAIProvider(api_key="bad-key")
        body = {"error": {"code": "invalid_api_key"}}
        with patch("httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, _response(401, body))
            with pytest.raises(CompletionAuthError):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])

    @pytest.mark.asyncio
    async def test_chat_completion_timeout_is_transient(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, side_effect=httpx.ReadTimeout("timed out"))
            with pytest.raises(CompletionTransientError):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])

    @pytest.mark.asyncio
    async def test_chat_completion_malformed_payload_is_transient(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch("httpx.AsyncClient") as mock_client:
            _mock_client(mock_client, _response(200, {"choices": []}))
            with pytest.raises(CompletionTransientError):
                await provider.chat_completion([LLMMessage.text("user", "Hello")])


class TestLLMFactory:
    """Tests for LLM provider factory."""

    def test_create_openai_provider(self):
        provider = create_llm_provider(provider="openai", api_key="test-key", model="gpt-4o")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o"

    def test_no_api_key_returns_none(self):
        assert create_llm_provider(provider="openai", api_key="") is None
        assert create_llm_provider(provider="openai", api_key=None) is None

    def test_unsupported_provider_raises(self):
        with pytest.raises(ValueError, match="Unsupported"):
            create_llm_provider(provider="unsupported", api_key="key")

    def test_custom_base_url_and_tuning(self):
        provider = create_llm_provider(
            provider="openai",
            api_key="key",
            base_url="https://gateway.example.com/v1",
            default_max_tokens=200,
            timeout=None,
        )
        assert provider.base_url == "https://gateway.example.com/v1"
        assert provider.default_max_tokens == 200
        assert provider.timeout == 60.0
