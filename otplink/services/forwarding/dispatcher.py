"""Forwarding dispatcher with at-most-once delivery per record.

Decision order for :meth:`ForwardingDispatcher.forward_otp`:

1. A record already marked forwarded is never re-sent.
2. The record store is consulted: if this record (or another record with
   the same code and sender inside the session window) was forwarded by a
   different worker, that state is adopted instead of re-sending.
3. A per-record lock gives single flight, and a sliding-window set keyed by
   code and sender suppresses repeat sends of the same logical OTP.
4. Channel settings are validated, then webhook and email are each
   attempted once, in that order.
"""

import asyncio
from typing import Dict, List, Optional

from loguru import logger

from otplink.constants import Forwarding
from otplink.core.exceptions import OTPLinkError
from otplink.models.configuration import Configuration
from otplink.models.otp_record import ForwardingMethod, OTPRecord
from otplink.repositories.otp_record_repository import OTPRecordRepository
from otplink.services.otp.dedup_cache import Clock, ExpiringKeyCache
from otplink.utils.masking import mask_sender

from .base import ForwardingChannel
from .channels.email import validate_email_settings


class ForwardingDispatcher:
    """Forward OTP records through every configured channel."""

    def __init__(
        self,
        record_repository: OTPRecordRepository,
        channels: List[ForwardingChannel],
        session_ttl_seconds: float = Forwarding.SESSION_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            record_repository: Record store used to persist and reconcile state
            channels: Channels in delivery order (webhook before email)
            session_ttl_seconds: Sliding window for repeat-send suppression
            clock: Time source for the session window
        """
        self._records = record_repository
        self._channels = list(channels)
        self._session_window = ExpiringKeyCache(session_ttl_seconds, clock=clock)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def session_window(self) -> ExpiringKeyCache:
        return self._session_window

    @staticmethod
    def session_key(record: OTPRecord) -> str:
        return f"{record.otp}:{record.sender}"

    @staticmethod
    def validate(config: Configuration) -> None:
        """
        Validate channel settings before any delivery is attempted.

        Raises:
            InvalidConfigError: If an enabled channel is unusable
        """
        if config.email_enabled:
            validate_email_settings(config.email_settings)

    async def _adopt_stored_state(self, record: OTPRecord) -> bool:
        stored = await self._records.find_forwarded_duplicate(
            record, self._session_window.ttl_seconds
        )
        if stored is None:
            return False

        method = stored.forwarding_method or ForwardingMethod.EMAIL
        record.mark_forwarded(method)
        if stored.id != record.id:
            await self._records.update(record)
        logger.info(f"Record {record.id} already forwarded elsewhere via {method.value}")
        return True

    async def forward_otp(self, record: OTPRecord, config: Configuration) -> bool:
        """
        Forward ``record`` using the channels enabled in ``config``.

        Args:
            record: OTP record; mutated and persisted when a channel delivers
            config: Current configuration

        Returns:
            True if at least one channel delivered, or the record was already
            forwarded; False if every configured channel failed or none is
            configured

        Raises:
            InvalidConfigError: If an enabled channel is misconfigured
            StorageError: If persisting the forwarded state fails
        """
        if record.forwarded:
            logger.debug(f"Record {record.id} already forwarded, skipping")
            return True

        lock = self._locks.setdefault(record.id, asyncio.Lock())
        self._lock_users[record.id] = self._lock_users.get(record.id, 0) + 1
        try:
            async with lock:
                # A concurrent caller may have finished while we waited
                if record.forwarded:
                    return True
                if await self._adopt_stored_state(record):
                    return True
                self.validate(config)
                return await self._deliver(record, config)
        finally:
            self._lock_users[record.id] -= 1
            if self._lock_users[record.id] == 0:
                del self._lock_users[record.id]
                del self._locks[record.id]

    async def _send(
        self, channel: ForwardingChannel, record: OTPRecord, config: Configuration
    ) -> bool:
        try:
            outcome = await channel.send(record, config)
        except OTPLinkError:
            raise
        except Exception as e:
            logger.error(f"{channel.method.value} channel raised for record {record.id}: {e}")
            return False

        if not outcome.delivered:
            logger.warning(
                f"{channel.method.value} forwarding failed for record {record.id}: "
                f"{outcome.error.message}"
            )
            return False
        return True

    async def _deliver(self, record: OTPRecord, config: Configuration) -> bool:
        key = self.session_key(record)
        if self._session_window.contains(key):
            logger.info(f"OTP from {mask_sender(record.sender)} already forwarded this session")
            return True

        channels = [c for c in self._channels if c.is_configured(config)]
        if not channels:
            logger.warning("No forwarding channel configured")
            return False

        self._session_window.add(key)
        forwarded = False
        try:
            for channel in channels:
                if not await self._send(channel, record, config):
                    continue
                record.mark_forwarded(channel.method)
                await self._records.update(record)
                forwarded = True
        finally:
            if not forwarded:
                # Let a manual retry through
                self._session_window.discard(key)
        return forwarded

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop expired session-window keys."""
        return self._session_window.purge_expired(now)
