"""
Leadbot - Main FastAPI Application
"""

import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .config import Settings, settings as default_settings
from .api import health_router, sessions_router, analysis_router
from .core import AnalysisPipeline, ChatService, SessionCache, SessionStore
from .core.logging_config import setup_logging
from .errors import LeadbotError, MalformedExtraction
from .llm import LLMProvider, create_llm_provider
from .middleware import RequestLoggingMiddleware
from .storage import SessionRecordStore, create_record_store

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


async def leadbot_error_handler(request: Request, exc: LeadbotError) -> JSONResponse:
    """Render taxonomy errors as {"error": message} with their status code."""
    content = {"error": exc.message}
    if isinstance(exc, MalformedExtraction):
        content["raw"] = exc.raw_text
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Server error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    config: Optional[Settings] = None,
    record_store: Optional[SessionRecordStore] = None,
    llm_provider: Optional[LLMProvider] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the application and its components.

    Args:
        config: Settings (defaults to the environment-loaded settings)
        record_store: Durable store override (defaults to config.storage_type)
        llm_provider: LLM provider override (defaults to config.llm_*)
        configure_logging: Install handlers on startup
    """
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        if configure_logging:
            setup_logging(config)
        logger.info(f"Starting {config.app_name} v{config.app_version}")
        logger.info(f"Storage: {config.storage_type} ({config.local_storage_path})")
        logger.info(f"Persistence mode: {config.persistence_mode}, history limit: {config.history_limit}")
        if app.state.llm_provider is None:
            logger.warning("LLM API key is not configured; chat and analysis will fail")
        yield
        logger.info(f"Shutting down {config.app_name}")

    if record_store is None:
        record_store = create_record_store(config.storage_type, config.local_storage_path)
    if llm_provider is None:
        llm_provider = create_llm_provider(
            provider=config.llm_provider,
            api_key=config.api_key,
            model=config.llm_model,
            base_url=config.llm_base_url,
            default_temperature=config.llm_temperature,
            default_max_tokens=config.llm_max_tokens,
            timeout=config.llm_timeout,
        )

    session_store = SessionStore(
        record_store,
        system_prompt=config.system_prompt,
        history_limit=config.history_limit,
        persistence_mode=config.persistence_mode,
        cache=SessionCache(max_sessions=config.cache_max_sessions),
    )

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Conversational assistant backend with session history and lead analysis",
        lifespan=lifespan,
    )
    app.state.llm_provider = llm_provider
    app.state.session_store = session_store
    app.state.chat_service = ChatService(
        session_store,
        llm_provider,
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens,
    )
    app.state.analysis_pipeline = AnalysisPipeline(
        session_store,
        llm_provider,
        model=config.analysis_model or config.llm_model,
        temperature=config.analysis_temperature,
        max_tokens=config.analysis_max_tokens,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(LeadbotError, leadbot_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(sessions_router)
    app.include_router(analysis_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "leadbot.main:app",
        host="0.0.0.0",
        port=3000,
        reload=default_settings.debug
    )
