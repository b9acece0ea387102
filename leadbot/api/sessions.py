"""
Session API endpoints - create sessions, chat, read and delete conversations.
"""

from fastapi import APIRouter, Depends

from .deps import get_chat_service, get_session_store
from ..core import ChatService, SessionStore
from ..models import (
    ChatRequest,
    ChatResponse,
    ConversationResponse,
    SessionCreated,
    SessionListResponse,
    StatusMessage,
)

router = APIRouter(prefix="/api", tags=["sessions"])


@router.post("/session", response_model=SessionCreated)
async def create_session(store: SessionStore = Depends(get_session_store)):
    """Create a new session and return its id."""
    session = await store.create_session()
    return SessionCreated(session_id=session.session_id)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Send a user message and get the assistant reply.

    Args:
        request: Message text and session id

    Returns:
        ChatResponse with reply text and timestamp
    """
    reply, timestamp = await chat_service.reply(request.session_id, request.message)
    return ChatResponse(response=reply, session_id=request.session_id, timestamp=timestamp)


@router.get("/conversation/{session_id}", response_model=ConversationResponse)
async def get_conversation(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Conversation history without the system prompt. Unknown ids start a new session."""
    session = await store.get_session(session_id)
    return ConversationResponse(
        session_id=session_id,
        messages=session.history(),
        created_at=session.created_at,
        last_activity=session.last_activity,
    )


@router.delete("/conversation/{session_id}", response_model=StatusMessage)
async def delete_conversation(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Delete a conversation. Deleting an unknown id also succeeds."""
    await store.delete(session_id)
    return StatusMessage(message="Conversation cleared successfully")


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(store: SessionStore = Depends(get_session_store)):
    """All sessions, newest first."""
    return SessionListResponse(sessions=await store.list())
