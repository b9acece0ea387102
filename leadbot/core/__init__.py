"""Core module - session lifecycle, history window, chat and analysis logic."""

from .history_window import trim
from .session_cache import SessionCache
from .session_store import SessionStore, generate_session_id
from .chat_service import ChatService
from .analysis import AnalysisPipeline, build_transcript, parse_extraction

__all__ = [
    'trim', 'SessionCache', 'SessionStore', 'generate_session_id',
    'ChatService', 'AnalysisPipeline', 'build_transcript', 'parse_extraction',
]
