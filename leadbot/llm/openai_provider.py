"""
OpenAI-compatible LLM Provider.
Talks to any chat/completions endpoint that follows the OpenAI wire format.
"""

import httpx
import logging
import time
from typing import Optional, List, Dict, Any

from .base import LLMProvider, LLMMessage, LLMResponse
from ..errors import (
    CompletionError,
    CompletionAuthError,
    CompletionQuotaExceeded,
    CompletionTransientError,
)

logger = logging.getLogger(__name__)


def classify_http_error(status_code: int, body: Any) -> CompletionError:
    """
    Map an error response onto the completion error taxonomy.

    Args:
        status_code: HTTP status of the response
        body: Decoded JSON body, or None when it was not JSON

    Returns:
        The CompletionError subclass instance to raise
    """
    code = None
    message = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code") or body["error"].get("type")
        message = body["error"].get("message")

    if code == "insufficient_quota":
        return CompletionQuotaExceeded()
    if status_code == 401 or code == "invalid_api_key":
        return CompletionAuthError()
    detail = f"LLM API error {status_code}"
    if message:
        detail += f": {message}"
    logger.debug(detail)
    return CompletionTransientError()


class OpenAIProvider(LLMProvider):
    """
    Provider for the OpenAI Chat Completions API.
    base_url may point at any OpenAI-compatible gateway.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4.1-mini",
        base_url: str = "https://api.openai.com/v1",
        default_temperature: float = 0.7,
        default_max_tokens: int = 500,
        timeout: float = 60.0,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens)
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Send request to the Chat Completions endpoint."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload: Dict[str, Any] = {
            "model": kwargs.get("model") or self.model,
            "messages": self._format_messages(messages),
            "temperature": temperature if temperature is not None else self.default_temperature,
            "max_tokens": max_tokens or self.default_max_tokens,
        }
        if kwargs.get("response_format"):
            payload["response_format"] = kwargs["response_format"]

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"LLM API call starting: provider=openai, model={payload['model']}, "
                f"temperature={payload['temperature']}, {len(messages)} messages"
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=self._get_headers())
                if resp.status_code >= 400:
                    try:
                        body = resp.json()
                    except ValueError:
                        body = None
                    raise classify_http_error(resp.status_code, body)
                data = resp.json()

            choice = data["choices"][0]
            content = choice["message"]["content"] or ""
        except CompletionError as e:
            self._log_failure(e, payload, start_time)
            raise
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            self._log_failure(e, payload, start_time)
            raise CompletionTransientError() from e

        usage = data.get("usage", {})
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "LLM API call completed",
            extra={"extra_fields": {
                "provider": "openai",
                "model": data.get("model", payload["model"]),
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
                "duration_ms": round(duration_ms, 2),
            }}
        )

        return LLMResponse(
            content=content,
            model=data.get("model", payload["model"]),
            usage=usage,
            raw=data,
        )

    def _log_failure(self, error: Exception, payload: Dict[str, Any], start_time: float) -> None:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"LLM API call failed: {type(error).__name__}: {error}",
            exc_info=not isinstance(error, CompletionError),
            extra={"extra_fields": {
                "provider": "openai",
                "model": payload.get("model"),
                "duration_ms": round(duration_ms, 2),
                "error": str(error),
            }}
        )
