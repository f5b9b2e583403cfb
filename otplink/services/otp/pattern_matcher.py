"""Keyword filtering and OTP extraction for SMS text."""

import re
from typing import Iterable, List, Optional, Pattern

from loguru import logger

from otplink.constants import OTP

# ASCII digits only; \d would also match other Unicode decimal digits
_DIGIT_RUN: Pattern[str] = re.compile(r"[0-9]+")


def get_default_keywords() -> List[str]:
    """Return a fresh copy of the default keyword list."""
    return list(OTP.DEFAULT_KEYWORDS)


def extract_otp(
    message: str,
    min_length: int = OTP.DEFAULT_MIN_LENGTH,
    max_length: int = OTP.DEFAULT_MAX_LENGTH,
) -> Optional[str]:
    """
    Extract the first digit run whose length is within range.

    Runs are maximal sequences of 0-9 and are evaluated in order of
    appearance; the first one with ``min_length <= len(run) <= max_length``
    wins.

    Args:
        message: Text to scan
        min_length: Minimum accepted run length (inclusive)
        max_length: Maximum accepted run length (inclusive)

    Returns:
        The OTP digits, or None if no run qualifies

    Example:
        >>> extract_otp("abc12de34567fg", 4, 6)
        '34567'
    """
    if not message:
        return None

    for match in _DIGIT_RUN.finditer(message):
        digits = match.group(0)
        if min_length <= len(digits) <= max_length:
            logger.debug(f"OTP candidate accepted (length {len(digits)})")
            return digits

    logger.debug(f"No digit run of length {min_length}-{max_length} found")
    return None


def contains_keywords(message: str, keywords: Iterable[str] = OTP.DEFAULT_KEYWORDS) -> bool:
    """
    Case-insensitive substring test of ``message`` against ``keywords``.

    An empty keyword list never matches.
    """
    lower_message = message.lower()
    for keyword in keywords:
        lower_keyword = keyword.lower()
        if lower_keyword in lower_message:
            logger.debug(f"Keyword matched: {lower_keyword}")
            return True
    return False
