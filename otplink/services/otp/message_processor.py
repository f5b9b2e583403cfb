"""Turn incoming SMS text into new OTP records."""

from typing import Iterable, Optional

from loguru import logger

from otplink.constants import OTP
from otplink.models.otp_record import OTPRecord, OTPSource
from otplink.utils.masking import mask_sender

from .dedup_cache import Clock, ExpiringKeyCache
from .pattern_matcher import contains_keywords, extract_otp


class MessageProcessor:
    """Keyword filter + OTP extractor + duplicate suppression."""

    def __init__(
        self,
        cache: Optional[ExpiringKeyCache] = None,
        ttl_seconds: float = OTP.DEDUP_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize message processor.

        Args:
            cache: Duplicate-suppression cache (created if omitted)
            ttl_seconds: Window for a new cache
            clock: Time source for a new cache
        """
        self._cache = cache or ExpiringKeyCache(ttl_seconds, clock=clock)

    @property
    def cache(self) -> ExpiringKeyCache:
        return self._cache

    @staticmethod
    def cache_key(sender: str, otp: str) -> str:
        return f"{sender}:{otp}"

    def process_message(
        self,
        sender: str,
        message: str,
        keywords: Iterable[str] = OTP.DEFAULT_KEYWORDS,
        min_length: int = OTP.DEFAULT_MIN_LENGTH,
        max_length: int = OTP.DEFAULT_MAX_LENGTH,
    ) -> Optional[OTPRecord]:
        """
        Process an incoming message.

        Args:
            sender: Sender phone number or ID
            message: SMS text
            keywords: Keywords one of which must appear in the message
            min_length: Minimum OTP length
            max_length: Maximum OTP length

        Returns:
            A new, unforwarded OTP record, or None when the message has no
            keyword, no qualifying code, or repeats a recent sender+code pair
        """
        masked = mask_sender(sender)

        if not contains_keywords(message, keywords):
            logger.debug(f"Message from {masked} has no keyword, ignored")
            return None

        otp = extract_otp(message, min_length, max_length)
        if not otp:
            logger.debug(f"Message from {masked} has no OTP of length {min_length}-{max_length}")
            return None

        key = self.cache_key(sender, otp)
        if self._cache.contains(key):
            logger.info(f"Duplicate OTP from {masked} suppressed")
            return None
        self._cache.add(key)

        record = OTPRecord(otp=otp, sender=sender, message=message, source=OTPSource.SMS)
        logger.info(f"OTP detected from {masked} (record {record.id})")
        return record
