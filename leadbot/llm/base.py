"""
LLM Provider Base - Abstract base for all LLM API providers.
Providers report failures as CompletionError subclasses so callers never
inspect vendor-specific error codes.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, Iterable
from dataclasses import dataclass, field

from ..models.session import Message


@dataclass
class LLMMessage:
    """A message in a completion request."""
    role: str  # "system", "user", "assistant"
    content: str

    @staticmethod
    def text(role: str, text: str) -> "LLMMessage":
        """Create a text-only message."""
        return LLMMessage(role=role, content=text)

    @staticmethod
    def from_history(messages: Iterable[Message]) -> List["LLMMessage"]:
        """Convert stored session messages into request messages."""
        return [LLMMessage(role=m.role.value, content=m.content) for m in messages]


@dataclass
class LLMResponse:
    """Response from an LLM API call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    raw: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """
    Abstract base class for LLM API providers.
    All providers must implement chat_completion.
    """

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None,
                 default_temperature: float = 0.7, default_max_tokens: int = 500):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of conversation messages
            temperature: Sampling temperature override
            max_tokens: Max tokens override
            **kwargs: Additional provider-specific parameters
                (model, response_format)

        Returns:
            LLMResponse with the generated content

        Raises:
            CompletionQuotaExceeded: Provider quota is exhausted
            CompletionAuthError: Credential rejected
            CompletionTransientError: Any other failure
        """
        pass

    def _format_messages(self, messages: List[LLMMessage]) -> List[Dict[str, Any]]:
        """Convert LLMMessage list to API-compatible format."""
        return [{"role": m.role, "content": m.content} for m in messages]
