"""Poll loop feeding new SMS messages into the OTP service."""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from loguru import logger

from otplink.constants import Listener
from otplink.models.otp_record import OTPRecord
from otplink.utils.masking import mask_sender

from ..otp_service import OTPService
from .permissions import PermissionProvider, StaticPermissionProvider
from .sources import SmsMessage, SmsSource

OtpCallback = Callable[[OTPRecord], Awaitable[None]]


class SmsListener:
    """
    Poll an :class:`SmsSource` and hand new messages to :class:`OTPService`.

    Example:
        listener = SmsListener(JsonInboxSource("inbox.json"), service)
        if await listener.start():
            ...
            await listener.stop()
    """

    def __init__(
        self,
        source: SmsSource,
        service: OTPService,
        permission_provider: Optional[PermissionProvider] = None,
        poll_interval: float = Listener.POLL_INTERVAL_SECONDS,
        heartbeat_interval: float = Listener.HEARTBEAT_INTERVAL_SECONDS,
        on_otp: Optional[OtpCallback] = None,
    ):
        """
        Initialize listener.

        Args:
            source: Where messages come from
            service: Processes, stores and forwards each message
            permission_provider: Checked once on start (default: always granted)
            poll_interval: Seconds between polls
            heartbeat_interval: Seconds between liveness logs
            on_otp: Awaited with every new OTP record
        """
        self._source = source
        self._service = service
        self._permissions = permission_provider or StaticPermissionProvider()
        self._poll_interval = poll_interval
        self._heartbeat_interval = heartbeat_interval
        self._on_otp = on_otp

        self._last_seen = 0
        self._seen_at_last: Set[SmsMessage] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._last_heartbeat: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def last_seen(self) -> int:
        """Date (epoch ms) of the newest message seen so far."""
        return self._last_seen

    async def start(self, since: Optional[int] = None) -> bool:
        """
        Start polling.

        Args:
            since: Only messages newer than this epoch-ms date are handled
                (default: now, so the existing inbox is skipped)

        Returns:
            True if the listener is running, False if permission was refused
        """
        if self.is_running:
            logger.warning("SMS listener already running")
            return True

        if not await self._permissions.ensure_granted():
            logger.warning("SMS listener not started: permission denied")
            return False

        self._last_seen = since if since is not None else int(time.time() * 1000)
        self._seen_at_last = set()
        self._stop_event = asyncio.Event()
        self._poll_task = asyncio.create_task(self._poll_loop(), name="sms-poll")
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop(), name="sms-heartbeat")

        logger.info(f"SMS listener started (poll every {self._poll_interval}s)")
        return True

    async def stop(self) -> None:
        """Stop polling; a tick already in progress runs to completion."""
        if self._stop_event is None:
            return

        self._stop_event.set()
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
        if self._poll_task:
            await self._poll_task

        self._poll_task = None
        self._heartbeat_task = None
        self._stop_event = None
        logger.info("SMS listener stopped")

    async def _wait_or_stop(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; True if stop was requested meanwhile."""
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _poll_loop(self) -> None:
        while not await self._wait_or_stop(self._poll_interval):
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Error processing SMS messages: {e}")

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            self._last_heartbeat = datetime.now(timezone.utc)
            purged = self._service.processor.cache.purge_expired()
            purged += self._service.dispatcher.purge_expired()
            logger.debug(f"SMS listener alive (last_seen={self._last_seen}, purged={purged})")

    def _is_new(self, message: SmsMessage) -> bool:
        if message.date > self._last_seen:
            return True
        # Same millisecond as the newest handled message, but not that message
        return (
            message.date == self._last_seen
            and bool(self._seen_at_last)
            and message not in self._seen_at_last
        )

    def _advance(self, batch: List[SmsMessage]) -> None:
        newest = batch[-1].date
        at_newest = {m for m in batch if m.date == newest}
        if newest == self._last_seen:
            self._seen_at_last |= at_newest
        else:
            self._seen_at_last = at_newest
        self._last_seen = newest

    async def poll_once(self) -> int:
        """
        Run one poll tick.

        A message that fails is logged and skipped; the rest of the batch
        is still handled.

        Returns:
            Number of new OTP records produced
        """
        messages = await self._source.fetch_recent()
        new_messages = sorted((m for m in messages if self._is_new(m)), key=lambda m: m.date)
        if not new_messages:
            return 0

        logger.debug(f"Found {len(new_messages)} new SMS messages")
        self._advance(new_messages)

        config = await self._service.get_config()
        if not config.sms_listener_enabled:
            logger.debug("SMS listener disabled in configuration, skipping messages")
            return 0

        produced = 0
        for message in new_messages:
            logger.debug(f"Processing SMS from {mask_sender(message.sender)}")
            try:
                record = await self._service.handle_sms(message.sender, message.body)
            except Exception as e:
                logger.error(f"Failed to handle SMS from {mask_sender(message.sender)}: {e}")
                continue
            if record is None:
                continue
            produced += 1
            if self._on_otp is not None:
                try:
                    await self._on_otp(record)
                except Exception as e:
                    logger.error(f"OTP callback failed for record {record.id}: {e}")
        return produced

    def status(self) -> Dict[str, Any]:
        """Listener status for health reporting."""
        return {
            "running": self.is_running,
            "last_seen": self._last_seen,
            "last_heartbeat": self._last_heartbeat.isoformat() if self._last_heartbeat else None,
            "poll_interval_seconds": self._poll_interval,
        }
