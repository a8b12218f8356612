"""
Runtime configuration.

All settings come from FLEET_* environment variables so the same build can
run against staging and production telematics accounts.
"""

from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TELEMETRY_BASE_URL = "https://ev-backend.trakmatesolutions.com/extapi"


class Settings(BaseSettings):
    """Service settings with FLEET_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        env_ignore_empty=True,
        case_sensitive=False,
    )

    # Telematics API
    telemetry_base_url: str = DEFAULT_TELEMETRY_BASE_URL
    telemetry_api_key: str = ""
    telemetry_timeout_s: float = 30.0

    # Stored vehicle details
    vehicles_file: Optional[str] = None

    # Pipeline defaults
    moving_threshold_kmh: float = 5.0
    report_timezone: str = "source"
    drive_mode_strategy: Literal["speed", "throttle"] = "speed"

    # Result cache
    cache_ttl_s: float = 60.0
    cache_max_entries: int = 256

    @field_validator("telemetry_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("drive_mode_strategy", mode="before")
    @classmethod
    def lowercase_strategy(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("cache_max_entries")
    @classmethod
    def positive_entries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache_max_entries must be at least 1")
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
