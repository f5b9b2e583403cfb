"""Pydantic configuration models for forwarding and detection settings.

The persisted JSON uses camelCase keys; Python code uses snake_case
attributes. Both spellings are accepted on input.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from otplink.constants import OTP, Forwarding
from otplink.core.exceptions import InvalidConfigError


class EmailSettings(BaseModel):
    """SMTP settings for the email channel. An empty recipient disables it."""

    model_config = ConfigDict(populate_by_name=True)

    smtp_host: str = Field(default="", alias="smtpHost")
    smtp_port: int = Field(default=Forwarding.DEFAULT_SMTP_PORT, ge=1, le=65535, alias="smtpPort")
    username: str = Field(default="")
    password: str = Field(default="", repr=False)
    recipient: str = Field(default="")

    @field_validator("smtp_host", "username", "recipient")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("recipient")
    @classmethod
    def validate_recipient(cls, v: str) -> str:
        """Validate recipient email format."""
        if v and "@" not in v:
            raise ValueError("Invalid recipient email format")
        return v


class Configuration(BaseModel):
    """User configuration for detection and forwarding."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    keywords: List[str] = Field(default_factory=lambda: list(OTP.DEFAULT_KEYWORDS))
    otp_min_length: int = Field(
        default=OTP.DEFAULT_MIN_LENGTH,
        ge=OTP.MIN_LENGTH_BOUND,
        le=OTP.MAX_LENGTH_BOUND,
        alias="otpMinLength",
    )
    otp_max_length: int = Field(
        default=OTP.DEFAULT_MAX_LENGTH,
        ge=OTP.MIN_LENGTH_BOUND,
        le=OTP.MAX_LENGTH_BOUND,
        alias="otpMaxLength",
    )
    webhook_url: str = Field(default="", alias="webhookUrl")
    # Older saved configs predate this toggle; absent means enabled.
    sms_listener_enabled: bool = Field(default=True, alias="smsListenerEnabled")
    email_settings: EmailSettings = Field(default_factory=EmailSettings, alias="emailSettings")

    @field_validator("keywords")
    @classmethod
    def normalize_keywords(cls, v: List[str]) -> List[str]:
        """Lowercase and de-duplicate keywords, preserving order."""
        seen: Dict[str, None] = {}
        for keyword in v:
            normalized = keyword.strip().lower()
            if normalized:
                seen.setdefault(normalized, None)
        return list(seen)

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        """Ensure a configured webhook URL is HTTP(S)."""
        v = v.strip()
        if v and not v.lower().startswith(("http://", "https://")):
            raise ValueError("Webhook URL must start with http:// or https://")
        return v

    @model_validator(mode="after")
    def check_length_range(self) -> "Configuration":
        """Validate that the OTP length range is not inverted."""
        if self.otp_min_length > self.otp_max_length:
            raise ValueError("otpMinLength must not exceed otpMaxLength")
        return self

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.webhook_url)

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_settings.recipient)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Configuration":
        """
        Create from the persisted JSON shape.

        Raises:
            InvalidConfigError: If the data fails validation
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise InvalidConfigError(f"Invalid configuration: {first['msg']}", field=field) from e
