"""
Shared test fixtures and configuration.
"""

import pytest
import os
import tempfile

# Set test environment variables before importing app modules
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(tempfile.gettempdir(), "leadbot_test_data"))
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_API_REQUESTS", "false")

from leadbot.core import SessionStore  # noqa: E402
from leadbot.errors import CompletionError  # noqa: E402
from leadbot.llm.base import LLMProvider, LLMResponse  # noqa: E402
from leadbot.storage import MemoryStorage  # noqa: E402

SYSTEM_PROMPT = "You are a test assistant."


class StubProvider(LLMProvider):
    """LLM provider returning canned replies and recording requests."""

    def __init__(self, replies=None):
        super().__init__(api_key="stub", model="stub-model")
        self.replies = list(replies or [])
        self.calls = []
        self.error = None

    async def chat_completion(self, messages, temperature=None, max_tokens=None, **kwargs):
        self.calls.append({"messages": list(messages), "kwargs": kwargs})
        if self.error is not None:
            raise self.error
        content = self.replies.pop(0) if self.replies else f"reply {len(self.calls)}"
        return LLMResponse(content=content, model=self.model)

    def fail_with(self, error: CompletionError) -> None:
        self.error = error


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def record_store():
    return MemoryStorage()


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def session_store(record_store):
    return SessionStore(record_store, system_prompt=SYSTEM_PROMPT)
