"""Core infrastructure: errors, settings and logging."""

from .exceptions import (
    DeliveryFailedError,
    ErrorKind,
    InvalidConfigError,
    OTPLinkError,
    RecordNotFoundError,
    StorageError,
)

__all__ = [
    "ErrorKind",
    "OTPLinkError",
    "InvalidConfigError",
    "DeliveryFailedError",
    "StorageError",
    "RecordNotFoundError",
]
