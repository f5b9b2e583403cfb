"""Custom exception classes for OTPLink."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Closed set of failure categories surfaced by the core."""

    INVALID_CONFIG = "invalid_config"
    DELIVERY_FAILED = "delivery_failed"
    STORAGE_FAILED = "storage_failed"


class OTPLinkError(Exception):
    """Base exception for OTPLink."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize OTPLink error.

        Args:
            message: Error message
            kind: Failure category
            recoverable: Whether the operation may succeed if repeated
            details: Additional error details
        """
        self.message = message
        self.kind = kind
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class InvalidConfigError(OTPLinkError):
    """Configuration is missing or fails validation."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        field: Optional[str] = None,
    ):
        details = {"field": field} if field else {}
        super().__init__(message, ErrorKind.INVALID_CONFIG, recoverable=False, details=details)


class DeliveryFailedError(OTPLinkError):
    """A forwarding channel could not deliver the OTP."""

    def __init__(
        self,
        message: str = "Delivery failed",
        channel: Optional[str] = None,
        status: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if channel:
            details["channel"] = channel
        if status is not None:
            details["status"] = status
        super().__init__(message, ErrorKind.DELIVERY_FAILED, recoverable=True, details=details)


class StorageError(OTPLinkError):
    """Reading or writing persisted state failed."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        key: Optional[str] = None,
        recoverable: bool = False,
    ):
        details = {"key": key} if key else {}
        super().__init__(message, ErrorKind.STORAGE_FAILED, recoverable=recoverable, details=details)


class RecordNotFoundError(StorageError):
    """No stored OTP record has the requested identifier."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"OTP record not found: {record_id}", recoverable=False)
        self.details["record_id"] = record_id
