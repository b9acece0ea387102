"""
FastAPI dependencies resolving the components built by create_app().
"""

from fastapi import Request

from ..core import AnalysisPipeline, ChatService, SessionStore


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def get_analysis_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.analysis_pipeline
