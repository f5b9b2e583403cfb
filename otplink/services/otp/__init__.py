"""OTP detection: keyword filter, extractor and duplicate suppression."""

from .dedup_cache import ExpiringKeyCache
from .message_processor import MessageProcessor
from .pattern_matcher import contains_keywords, extract_otp, get_default_keywords

__all__ = [
    "ExpiringKeyCache",
    "MessageProcessor",
    "contains_keywords",
    "extract_otp",
    "get_default_keywords",
]
