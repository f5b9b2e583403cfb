"""OTP record model and its persisted shape."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from otplink.constants import OTP


class OTPSource(Enum):
    """Where an OTP was detected."""

    SMS = "sms"
    EMAIL = "email"
    WEBHOOK = "webhook"
    MANUAL = "manual"


class ForwardingMethod(Enum):
    """Channel that delivered an OTP."""

    WEBHOOK = "webhook"
    EMAIL = "email"
    API = "api"


def utc_now_ms() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with milliseconds, e.g. ``2024-01-15T10:30:00.123Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string written by :func:`format_timestamp` (or a JS ``toISOString``)."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class OTPRecord:
    """
    A detected OTP code.

    Attributes:
        otp: The extracted digit string (e.g., "123456")
        sender: Phone number or address of the sender, "Unknown" when absent
        message: Raw message text
        source: Where the OTP was detected
        id: Opaque unique identifier
        timestamp: Creation time (UTC, millisecond precision)
        forwarded: Whether any channel delivered the OTP
        forwarding_method: Channel that delivered it; None while not forwarded
    """

    otp: str
    sender: str
    message: str
    source: OTPSource = OTPSource.SMS
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utc_now_ms)
    forwarded: bool = False
    forwarding_method: Optional[ForwardingMethod] = None

    def __post_init__(self):
        if not self.sender:
            self.sender = OTP.UNKNOWN_SENDER
        if not self.forwarded and self.forwarding_method is not None:
            raise ValueError("forwarding_method must be None while the record is not forwarded")

    def mark_forwarded(self, method: ForwardingMethod) -> None:
        """Mark the record as delivered through ``method``."""
        self.forwarded = True
        self.forwarding_method = method

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON shape."""
        return {
            "id": self.id,
            "otp": self.otp,
            "source": self.source.value,
            "sender": self.sender,
            "message": self.message,
            "timestamp": format_timestamp(self.timestamp),
            "forwarded": self.forwarded,
            "forwardingMethod": self.forwarding_method.value if self.forwarding_method else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OTPRecord":
        """Create from the persisted JSON shape."""
        method = data.get("forwardingMethod")
        forwarded = bool(data.get("forwarded", False))
        return cls(
            id=str(data["id"]),
            otp=str(data["otp"]),
            source=OTPSource(data.get("source", OTPSource.SMS.value)),
            sender=data.get("sender") or OTP.UNKNOWN_SENDER,
            message=data.get("message", ""),
            timestamp=parse_timestamp(data["timestamp"]),
            forwarded=forwarded,
            forwarding_method=ForwardingMethod(method) if forwarded and method else None,
        )
