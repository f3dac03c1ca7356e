"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    ``openai_api_key`` has no default, so a missing credential fails at
    startup rather than during a recording.
    """

    openai_api_key: str
    openai_base_url: str = "https://api.openai.com/v1"
    transcription_model: str = "whisper-1"
    analysis_model: str = "gpt-4o-mini"
    analysis_temperature: float = 0.3
    request_timeout_seconds: float = 60.0
    target_sample_rate: int = 16000
    target_channels: int = 1
    capture_block_size: int = 1024
    capture_queue_size: int = 256
    level_gain: float = 10.0
    input_device: str | None = None
    recordings_dir: Path | None = None
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    timezone: str = "UTC"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def uses_supabase(self) -> bool:
        """Return True when both Supabase credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)


def parse_input_device(raw: str | None) -> int | str | None:
    """Parse a sounddevice device selector from env.

    Numeric values are device indices, anything else is a name substring.
    """
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "default"}:
        return None
    if cleaned.isdigit():
        return int(cleaned)
    return cleaned
