"""Process settings with Pydantic validation."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from otplink.constants import OTP, Forwarding, Listener


class AppSettings(BaseSettings):
    """Runtime settings read from environment variables and ``.env``.

    These govern how the process runs (paths, timings, logging). The
    user-facing forwarding configuration lives in the record store, see
    ``otplink.models.configuration``.
    """

    # Storage
    data_dir: Path = Field(
        default=Path("data"), description="Directory holding the JSON key-value store"
    )
    history_limit: int = Field(
        default=OTP.HISTORY_LIMIT, ge=1, le=10_000, description="Maximum stored OTP records"
    )

    # Processing
    dedup_ttl_seconds: int = Field(
        default=OTP.DEDUP_TTL_SECONDS, ge=1, description="Duplicate-suppression window"
    )

    # Forwarding
    http_timeout_seconds: float = Field(
        default=Forwarding.HTTP_TIMEOUT_SECONDS, gt=0, description="Webhook request timeout"
    )
    smtp_timeout_seconds: float = Field(
        default=Forwarding.SMTP_TIMEOUT_SECONDS, gt=0, description="SMTP session timeout"
    )

    # Listener
    poll_interval_seconds: float = Field(
        default=Listener.POLL_INTERVAL_SECONDS, gt=0, description="SMS poll interval"
    )
    heartbeat_interval_seconds: float = Field(
        default=Listener.HEARTBEAT_INTERVAL_SECONDS, gt=0, description="Liveness log interval"
    )
    inbox_file: Optional[Path] = Field(
        default=None, description="JSON inbox file polled by the listen command"
    )

    # Web
    web_host: str = Field(default="127.0.0.1", description="Bind address for the HTTP surface")
    web_port: int = Field(default=8000, ge=1, le=65535, description="Port for the HTTP surface")

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    json_logging: bool = Field(default=True, description="Write the main log file as JSON lines")

    model_config = SettingsConfigDict(
        env_prefix="OTPLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Get cached settings instance."""
    return AppSettings()
