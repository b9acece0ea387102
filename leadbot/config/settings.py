"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. Be friendly, informative, and concise in your responses."
)


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Leadbot"
    app_version: str = "1.0.0"
    debug: bool = False

    # Storage
    storage_type: str = "local"  # local, memory
    local_storage_path: str = "./data"

    # Sessions
    persistence_mode: str = "lazy"  # lazy: persist on first reply, eager: persist on creation
    history_limit: int = 20  # stored/sent messages, system message included
    cache_max_sessions: int = 1000
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # LLM Provider settings
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4.1-mini"
    llm_base_url: Optional[str] = None  # uses provider default if not set
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    llm_timeout: float = 60.0

    # Legacy key (still accepted)
    openai_api_key: Optional[str] = None

    # Conversation analysis
    analysis_model: Optional[str] = None  # falls back to llm_model
    analysis_temperature: float = 0.2
    analysis_max_tokens: int = 800

    # CORS
    cors_origins: list[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/leadbot.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def api_key(self) -> Optional[str]:
        return self.llm_api_key or self.openai_api_key


settings = Settings()
