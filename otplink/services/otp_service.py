"""Application service tying detection, history and forwarding together.

This is the surface used by the CLI, the HTTP routes and the SMS listener.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from otplink.constants import OTP
from otplink.core.exceptions import (
    InvalidConfigError,
    OTPLinkError,
    RecordNotFoundError,
    StorageError,
)
from otplink.core.settings import AppSettings
from otplink.models.configuration import Configuration
from otplink.models.otp_record import OTPRecord
from otplink.repositories import (
    ConfigRepository,
    JsonFileStore,
    KeyValueStore,
    OTPRecordRepository,
)
from otplink.utils.masking import mask_sender

from .forwarding import EmailChannel, ForwardingDispatcher, SmtpEmailSender, WebhookChannel
from .otp import MessageProcessor, get_default_keywords


class OTPService:
    """Detect OTPs in incoming SMS, keep history, and forward them."""

    def __init__(
        self,
        config_repository: ConfigRepository,
        record_repository: OTPRecordRepository,
        processor: MessageProcessor,
        dispatcher: ForwardingDispatcher,
    ):
        self._configs = config_repository
        self._records = record_repository
        self._processor = processor
        self._dispatcher = dispatcher

    @property
    def processor(self) -> MessageProcessor:
        return self._processor

    @property
    def dispatcher(self) -> ForwardingDispatcher:
        return self._dispatcher

    # Incoming messages

    async def handle_sms(self, sender: Optional[str], body: Optional[str]) -> Optional[OTPRecord]:
        """
        Handle one incoming SMS: detect, store and auto-forward.

        Args:
            sender: Sender address; "Unknown" when empty
            body: Message text

        Returns:
            The new record (forwarding state reflects the auto-forward
            attempt), or None if the message produced no new OTP

        Raises:
            StorageError: If the record cannot be stored
        """
        sender = sender or OTP.UNKNOWN_SENDER
        config = await self._configs.load()

        record = self._processor.process_message(
            sender,
            body or "",
            config.keywords,
            config.otp_min_length,
            config.otp_max_length,
        )
        if record is None:
            return None

        try:
            await self._records.save(record)
        except StorageError:
            # Not stored, so the same SMS must not count as a duplicate
            self._processor.cache.discard(MessageProcessor.cache_key(sender, record.otp))
            raise

        try:
            forwarded = await self._dispatcher.forward_otp(record, config)
            logger.info(f"Auto-forward of record {record.id}: {'ok' if forwarded else 'failed'}")
        except OTPLinkError as e:
            logger.error(f"Auto-forward of record {record.id} aborted: {e.message}")

        return record

    def test_detection(self, message: str, sender: str = "Test") -> Optional[OTPRecord]:
        """
        Run detection with default settings without storing or forwarding.

        A throwaway processor is used so the live duplicate cache is untouched.
        """
        return MessageProcessor().process_message(sender, message)

    # History

    async def list_records(self) -> List[OTPRecord]:
        """All stored records, newest first."""
        return await self._records.load_all()

    async def get_record(self, record_id: str) -> Optional[OTPRecord]:
        return await self._records.get(record_id)

    async def forward_now(self, record_id: str) -> bool:
        """
        Forward a stored record on demand.

        Raises:
            RecordNotFoundError: If no stored record has ``record_id``
            InvalidConfigError: If an enabled channel is misconfigured
        """
        record = await self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)

        config = await self._configs.load()
        result = await self._dispatcher.forward_otp(record, config)
        logger.info(
            f"Manual forward of record {record_id} from {mask_sender(record.sender)}: "
            f"{'ok' if result else 'failed'}"
        )
        return result

    async def clear_records(self) -> None:
        await self._records.clear()

    # Configuration

    async def get_config(self) -> Configuration:
        return await self._configs.load()

    async def save_config(self, config: Configuration) -> Configuration:
        """
        Validate and persist ``config``.

        Raises:
            InvalidConfigError: If an enabled channel is incomplete
        """
        self._dispatcher.validate(config)
        await self._configs.save(config)
        return config

    async def update_config(self, changes: Dict[str, Any]) -> Configuration:
        """
        Apply partial changes (camelCase or snake_case keys) and save.

        ``emailSettings`` may itself be a partial mapping.

        Raises:
            InvalidConfigError: If the result fails validation
        """
        current = (await self._configs.load()).to_dict()
        for key, value in changes.items():
            if key in ("emailSettings", "email_settings") and isinstance(value, dict):
                current["emailSettings"] = {**current["emailSettings"], **value}
            else:
                current[key] = value
        return await self.save_config(Configuration.from_dict(current))

    async def add_keyword(self, keyword: str) -> List[str]:
        """
        Add a keyword (trimmed and lowercased).

        Raises:
            InvalidConfigError: If the keyword is blank or already present
        """
        normalized = keyword.strip().lower()
        if not normalized:
            raise InvalidConfigError("Keyword must not be empty", field="keywords")

        config = await self._configs.load()
        if normalized in config.keywords:
            raise InvalidConfigError(f"Keyword already exists: {normalized}", field="keywords")

        config.keywords = [*config.keywords, normalized]
        await self._configs.save(config)
        return config.keywords

    async def remove_keyword(self, keyword: str) -> List[str]:
        """
        Remove a keyword.

        Raises:
            InvalidConfigError: If the keyword is not configured
        """
        normalized = keyword.strip().lower()
        config = await self._configs.load()
        if normalized not in config.keywords:
            raise InvalidConfigError(f"Keyword not found: {normalized}", field="keywords")

        config.keywords = [k for k in config.keywords if k != normalized]
        await self._configs.save(config)
        return config.keywords

    async def reset_keywords(self) -> List[str]:
        config = await self._configs.load()
        config.keywords = get_default_keywords()
        await self._configs.save(config)
        return config.keywords

    async def set_listener_enabled(self, enabled: bool) -> Configuration:
        config = await self._configs.load()
        config.sms_listener_enabled = enabled
        await self._configs.save(config)
        return config


def create_otp_service(
    settings: AppSettings, store: Optional[KeyValueStore] = None
) -> OTPService:
    """
    Build an :class:`OTPService` wired from ``settings``.

    Args:
        settings: Process settings
        store: Key-value backend (default: JSON files under ``settings.data_dir``)
    """
    store = store or JsonFileStore(settings.data_dir)
    records = OTPRecordRepository(store, limit=settings.history_limit)
    dispatcher = ForwardingDispatcher(
        records,
        channels=[
            WebhookChannel(timeout_seconds=settings.http_timeout_seconds),
            EmailChannel(SmtpEmailSender(timeout_seconds=settings.smtp_timeout_seconds)),
        ],
        session_ttl_seconds=settings.dedup_ttl_seconds,
    )
    return OTPService(
        config_repository=ConfigRepository(store),
        record_repository=records,
        processor=MessageProcessor(ttl_seconds=settings.dedup_ttl_seconds),
        dispatcher=dispatcher,
    )
