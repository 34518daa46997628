"""Application configuration loaded from environment variables.

Uses pydantic-settings for validation and .env file support. Provider
credentials and model routing live in ``resume_chat.providers.config``.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Conversation engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    default_language: str = "en"

    # Remote chat endpoint (HTTP extraction backend)
    chat_api_base_url: str = "http://localhost:3000/api"
    chat_request_timeout_seconds: float = 30.0

    # Assisted-mode merge and follow-up rules
    confidence_threshold: float = 0.7
    multi_entry_follow_up_limit: int = 5
    follow_up_limit: int = 3
    response_time_history_size: int = 20
    max_consecutive_errors: int = 3

    # Persistence
    conversation_store: Literal["memory", "json"] = "memory"
    persistence_dir: str = ".conversations"

    @model_validator(mode="after")
    def check_limits(self) -> "Settings":
        """Reject thresholds and limits that would stall the conversation.

        Checks:
        - Confidence threshold must be within [0, 1]
        - Follow-up limits and history sizes must be positive
        - Request timeout must be positive
        """
        if not 0.0 <= self.confidence_threshold <= 1.0:
            msg = (
                "CONFIDENCE_THRESHOLD must be between 0 and 1. "
                f"Got: {self.confidence_threshold}"
            )
            raise ValueError(msg)

        for name in (
            "multi_entry_follow_up_limit",
            "follow_up_limit",
            "response_time_history_size",
            "max_consecutive_errors",
        ):
            if getattr(self, name) <= 0:
                msg = f"{name.upper()} must be positive. Got: {getattr(self, name)}"
                raise ValueError(msg)

        if self.chat_request_timeout_seconds <= 0:
            msg = (
                "CHAT_REQUEST_TIMEOUT_SECONDS must be positive. "
                f"Got: {self.chat_request_timeout_seconds}"
            )
            raise ValueError(msg)

        return self


settings = Settings()
