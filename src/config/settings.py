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

    log_level: str = Field(default="INFO")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/voice_ai.db",
        description="SQLAlchemy connection string.",
    )

    # Migrations / schema
    auto_create_db_schema: bool = Field(
        default=True,
        description="If true, creates tables automatically on startup (useful for local/dev).",
    )

    # Voice biometrics
    biometric_match_threshold: float = Field(default=0.78, ge=0.0, le=1.0)
    signature_length: int = Field(
        default=64,
        ge=8,
        description="Canonical length of a voice signature vector.",
    )
    signature_frame_size: int = Field(default=1024, ge=64)
    min_audio_duration_ms: int = Field(
        default=300,
        ge=1,
        description="Shortest audio sample accepted for enrollment or verification.",
    )

    # Call enrichment
    transcription_provider: Literal["whisper", "assemblyai"] = Field(default="whisper")
    whisper_model_size: str = Field(default="Systran/faster-whisper-small")
    whisper_compute_type: str = Field(default="auto")  # e.g. float16, int8_float16
    whisper_device: str = Field(default="auto")
    assemblyai_api_key: str | None = Field(default=None)
    assemblyai_base_url: str = Field(default="https://api.assemblyai.com/v2")
    assemblyai_poll_interval_seconds: float = Field(default=3.0, gt=0.0)
    recording_download_timeout_seconds: float = Field(default=60.0, gt=0.0)
    enrichment_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Upper bound for each transcription or summarization call.",
    )

    # LLM connectivity (summaries and sentiment)
    llm_provider: Literal["self_hosted_vllm", "openai"] = Field(default="openai")
    llm_endpoint: str | None = Field(
        default=None, description="HTTP endpoint for the self-hosted inference server."
    )
    llm_api_key: str | None = Field(default=None)
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier for the selected provider.",
    )

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_from_number: str | None = Field(default=None, description="E.164, e.g. +1415...")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    twilio_say_voice: str = Field(default="Polly.Joanna")
    twilio_say_language: str = Field(default="en-US")
    twilio_workflow_sid: str | None = Field(
        default=None,
        description="Optional TaskRouter workflow used to route callers after speech capture.",
    )
    agent_name: str = Field(default="your virtual agent")

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
