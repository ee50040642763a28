"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Pad-i configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    anthropic_base_url: str = Field(default="")
    chat_model: str = Field(default="claude-sonnet-4-5-20250929")
    relevance_model: str = Field(default="claude-haiku-4-5-20251001")
    max_tokens: int = Field(default=1024)

    # Database
    database_path: Path = Field(default=Path("data/padi.db"))

    # Conversation
    history_limit: int = Field(default=10)
    default_conversation_title: str = Field(default="New conversation")

    # Turn processing
    completion_timeout: float = Field(default=30.0)
    relevance_concurrency: int = Field(default=1, ge=1)

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8100)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
