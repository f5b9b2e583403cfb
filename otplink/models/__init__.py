"""Domain models."""

from .configuration import Configuration, EmailSettings
from .otp_record import (
    ForwardingMethod,
    OTPRecord,
    OTPSource,
    format_timestamp,
    parse_timestamp,
    utc_now_ms,
)

__all__ = [
    "Configuration",
    "EmailSettings",
    "ForwardingMethod",
    "OTPRecord",
    "OTPSource",
    "format_timestamp",
    "parse_timestamp",
    "utc_now_ms",
]
