"""
API Models - Request and response bodies of the HTTP boundary.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from .session import CamelModel, Message, SessionSummary


class ChatRequest(CamelModel):
    """Chat request. Both fields are checked by the chat service, not here."""
    message: Optional[str] = None
    session_id: Optional[str] = None


class ChatResponse(CamelModel):
    response: str
    session_id: str
    timestamp: datetime


class SessionCreated(CamelModel):
    session_id: str
    message: str = "Session created successfully"


class ConversationResponse(CamelModel):
    session_id: str
    messages: List[Message]
    created_at: datetime
    last_activity: datetime


class SessionListResponse(CamelModel):
    sessions: List[SessionSummary]


class AnalysisResponse(CamelModel):
    session_id: str
    analysis: Optional[Dict[str, Any]] = None
    analyzed_at: Optional[datetime] = None


class StatusMessage(CamelModel):
    message: str
