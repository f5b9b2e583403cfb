"""OTP-related constants."""

from typing import Final, Tuple


class OTP:
    """OTP detection defaults."""

    DEFAULT_KEYWORDS: Final[Tuple[str, ...]] = (
        "otp",
        "code",
        "verification",
        "login",
        "verify",
        "password",
        "auth",
        "authenticate",
        "security",
    )
    DEFAULT_MIN_LENGTH: Final[int] = 4
    DEFAULT_MAX_LENGTH: Final[int] = 8
    MIN_LENGTH_BOUND: Final[int] = 1
    MAX_LENGTH_BOUND: Final[int] = 20
    DEDUP_TTL_SECONDS: Final[int] = 300
    HISTORY_LIMIT: Final[int] = 100
    UNKNOWN_SENDER: Final[str] = "Unknown"


class Forwarding:
    """Forwarding channel settings."""

    SESSION_TTL_SECONDS: Final[int] = 300
    HTTP_TIMEOUT_SECONDS: Final[float] = 10.0
    SMTP_TIMEOUT_SECONDS: Final[float] = 10.0
    DEFAULT_SMTP_PORT: Final[int] = 587
    IMPLICIT_TLS_PORT: Final[int] = 465
    EMAIL_SUBJECT_PREFIX: Final[str] = "OTPLink"


class Listener:
    """SMS poll loop timing."""

    POLL_INTERVAL_SECONDS: Final[float] = 2.0
    HEARTBEAT_INTERVAL_SECONDS: Final[float] = 10.0


class StorageKeys:
    """Keys used in the flat key-value store."""

    CONFIG: Final[str] = "otp_link_config"
    RECORDS: Final[str] = "otp_link_records"
