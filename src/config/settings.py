"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5050)
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL Twilio reaches us on (e.g. https://<ngrok>.ngrok-free.app).",
    )

    # OpenAI Realtime
    openai_api_key: str | None = Field(default=None)
    openai_realtime_url: str = Field(default="wss://api.openai.com/v1/realtime")
    openai_realtime_model: str = Field(default="gpt-4o-realtime-preview-2024-10-01")
    realtime_voice: str = Field(default="alloy")
    realtime_temperature: float = Field(default=0.8, ge=0.6, le=1.2)
    realtime_transcription_model: str = Field(default="whisper-1")

    # Business backend (automation scenario webhook)
    backend_webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving {route, data1, data2} payloads.",
    )
    backend_webhook_timeout_seconds: float = Field(default=30.0, gt=0)

    # Greetings
    default_greeting: str = Field(
        default="Hello, welcome to Bart's Automotive. How can I assist you today?",
        description="Spoken when the backend has no personalized greeting for the caller.",
    )
    fallback_stream_greeting: str = Field(
        default="Hello, how can I assist you?",
        description="Used when the media stream start event carries no greeting parameter.",
    )

    # Complaint-logging deployment variant
    enable_complaint_logging: bool = Field(default=False)

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/relay.db",
        description="SQLAlchemy connection string.",
    )
    auto_create_db_schema: bool = Field(
        default=True,
        description="If true, creates tables automatically on startup (useful for local/dev).",
    )

    data_dir: Path = Field(default=Path("./data"))

    @field_validator("data_dir")
    @classmethod
    def ensure_data_dir(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
