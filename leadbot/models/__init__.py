"""Models module."""

from .session import Role, Message, SessionRecord, SessionSummary
from .api import (
    ChatRequest, ChatResponse, SessionCreated, ConversationResponse,
    SessionListResponse, AnalysisResponse, StatusMessage,
)

__all__ = [
    'Role', 'Message', 'SessionRecord', 'SessionSummary',
    'ChatRequest', 'ChatResponse', 'SessionCreated', 'ConversationResponse',
    'SessionListResponse', 'AnalysisResponse', 'StatusMessage',
]
