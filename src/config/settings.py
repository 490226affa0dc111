"""
Configuration management for the chat stream engine.
Loads settings from environment variables and the project .env file.
"""

from pathlib import Path
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from loguru import logger

# This file is at src/config/settings.py, so project root is 3 levels up
_project_root = Path(__file__).resolve().parent.parent.parent

PROJECT_ROOT = _project_root

_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file, override=True)
    logger.debug(f"Loaded .env from: {_env_file}")
else:
    load_dotenv(override=False)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Model selection
    default_model: str = Field(default="gemini-2.5-flash")

    # Stream reconciliation timings (seconds)
    completion_quiet_seconds: float = Field(default=2.0)  # Quiet window before a stream is finalized
    scroll_notify_delay_seconds: float = Field(default=0.05)  # Delay before the UI notify callback runs
    user_message_debounce_seconds: float = Field(default=1.0)  # Identical user text inside this window is a double submit

    # Conversation service behavior
    conversation_title_max_chars: int = Field(default=50)
    conversation_list_limit: int = Field(default=50)
    error_message_text: str = Field(default="Sorry, I encountered an error. Please try again.")

    # LLM providers
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="https://api.openai.com/v1/")
    google_generative_ai_api_key: str = Field(default="")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta/openai/")
    llm_temperature: float = Field(default=0.7)

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False)
    log_dir: str = Field(default="data/logs")

    # API server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    cors_origins: List[str] = Field(
        default=["http://localhost:8081", "http://localhost:19006", "http://127.0.0.1:8081"]
    )

    class Config:
        env_file = str(_project_root / ".env")
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()

_log_dir = Path(settings.log_dir)
if not _log_dir.is_absolute():
    _log_dir = _project_root / _log_dir

settings.log_dir_resolved = str(_log_dir)
