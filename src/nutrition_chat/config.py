"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("NODE_ENV", "development")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model_vision: str = "gpt-4o-mini"
    openai_model_chat: str = "gpt-4-turbo-preview"
    openai_timeout_seconds: float = 60.0
    port: int = 3000
    cors_origin: str = "http://localhost:5173"
    node_env: str = _ENVIRONMENT
    split_upstream_status: bool = False

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        """Return true when running in development mode."""
        return self.node_env == "development"


def parse_cors_origins(raw: str) -> list[str]:
    """Parse a comma-separated CORS origin setting."""
    origins = [chunk.strip() for chunk in raw.split(",")]
    return [origin for origin in origins if origin] or ["*"]
