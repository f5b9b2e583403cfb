"""Expiring key set used for duplicate suppression."""

import time
from typing import Callable, Dict, Optional

from loguru import logger

Clock = Callable[[], float]


class ExpiringKeyCache:
    """
    Set of string keys, each expiring ``ttl_seconds`` after insertion.

    Expiry is lazy on lookup plus an explicit :meth:`purge_expired` sweep.
    The clock is injectable so tests can move time deterministically; every
    method also accepts an explicit ``now``.
    """

    def __init__(self, ttl_seconds: float, clock: Optional[Clock] = None):
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of each key
            clock: Monotonic time source in seconds (default: time.monotonic)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock: Clock = clock or time.monotonic
        self._expiry: Dict[str, float] = {}

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def add(self, key: str, now: Optional[float] = None) -> None:
        """Insert ``key`` (or refresh it) with a full TTL."""
        self._expiry[key] = self._now(now) + self.ttl_seconds

    def contains(self, key: str, now: Optional[float] = None) -> bool:
        """Check whether ``key`` is present and unexpired; drops it if expired."""
        expires_at = self._expiry.get(key)
        if expires_at is None:
            return False
        if self._now(now) >= expires_at:
            del self._expiry[key]
            return False
        return True

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def discard(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._expiry.pop(key, None)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """
        Remove every expired key.

        Returns:
            Number of keys removed
        """
        current = self._now(now)
        expired = [key for key, expires_at in self._expiry.items() if current >= expires_at]
        for key in expired:
            del self._expiry[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired duplicate-suppression keys")
        return len(expired)

    def clear(self) -> None:
        """Remove all keys."""
        self._expiry.clear()

    def __len__(self) -> int:
        return len(self._expiry)
