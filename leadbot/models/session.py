"""
Session Models - Defines structures for chat sessions and their durable records.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Message originator."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One turn of a conversation."""
    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either form on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionRecord(CamelModel):
    """
    Full session state. The same shape is cached in-process and stored
    as one document per session in the durable store.
    """
    session_id: str
    created_at: datetime = Field(default_factory=utc_now)
    last_activity: Optional[datetime] = None
    messages: List[Message] = Field(default_factory=list)
    analysis: Optional[Dict[str, Any]] = None
    analyzed_at: Optional[datetime] = None

    # Whether the record has been written to the durable store at least once.
    # Not serialized.
    persisted: bool = Field(default=False, exclude=True)

    @model_validator(mode="after")
    def _fill_last_activity(self) -> "SessionRecord":
        # Records written before lastActivity was stored only carry createdAt
        if self.last_activity is None or self.last_activity < self.created_at:
            self.last_activity = self.created_at
        return self

    @property
    def message_count(self) -> int:
        """Number of non-system messages."""
        return sum(1 for m in self.messages if m.role != Role.SYSTEM)

    def history(self) -> List[Message]:
        """Messages without the system prompt, in timeline order."""
        return [m for m in self.messages if m.role != Role.SYSTEM]

    def touch(self) -> None:
        self.last_activity = max(utc_now(), self.created_at)

    def summary(self) -> "SessionSummary":
        return SessionSummary(
            session_id=self.session_id,
            message_count=self.message_count,
            created_at=self.created_at,
            last_activity=self.last_activity,
        )

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready durable representation."""
        return self.model_dump(mode="json", by_alias=True)


class SessionSummary(CamelModel):
    """Listing entry for a session."""
    session_id: str
    message_count: int = 0
    created_at: datetime
    last_activity: datetime
