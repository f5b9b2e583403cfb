"""SMS sources polled by the listener."""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from otplink.constants import OTP


@dataclass(frozen=True)
class SmsMessage:
    """
    An SMS as reported by a source.

    Attributes:
        sender: Originating address ("Unknown" when the source has none)
        body: Message text
        date: Receive time in epoch milliseconds
    """

    sender: str
    body: str
    date: int

    @classmethod
    def from_inbox_row(cls, row: Dict[str, Any]) -> "SmsMessage":
        """Build from an inbox row shaped ``{address, body, date}``."""
        return cls(
            sender=row.get("address") or row.get("sender") or OTP.UNKNOWN_SENDER,
            body=row.get("body") or "",
            date=int(row.get("date") or 0),
        )


class SmsSource(ABC):
    """Abstract base class for SMS sources."""

    @abstractmethod
    async def fetch_recent(self) -> List[SmsMessage]:
        """
        Fetch recent messages, in any order.

        The listener filters by date, so returning already-seen messages is
        harmless.
        """
        pass


class JsonInboxSource(SmsSource):
    """
    Read messages from a JSON file holding an array of inbox rows.

    The file is the bridge to whatever exports the device inbox (for example
    an ADB dump or a forwarder app writing to disk).
    """

    def __init__(self, path: Union[str, Path], max_count: int = 10):
        """
        Initialize inbox source.

        Args:
            path: JSON file with ``[{"address", "body", "date"}, ...]``
            max_count: Only the newest ``max_count`` rows are returned
        """
        self.path = Path(path)
        self.max_count = max_count

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, list) else []

    async def fetch_recent(self) -> List[SmsMessage]:
        rows = await asyncio.to_thread(self._read)
        messages = []
        for row in rows:
            try:
                messages.append(SmsMessage.from_inbox_row(row))
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed inbox row: {e}")
        messages.sort(key=lambda m: m.date, reverse=True)
        return messages[: self.max_count]


class QueueSmsSource(SmsSource):
    """In-memory source that other code pushes messages into."""

    def __init__(self):
        self._pending: List[SmsMessage] = []

    def push(self, sender: str, body: str, date: Optional[int] = None) -> SmsMessage:
        """Queue a message; ``date`` defaults to now."""
        message = SmsMessage(
            sender=sender or OTP.UNKNOWN_SENDER,
            body=body,
            date=date if date is not None else int(time.time() * 1000),
        )
        self._pending.append(message)
        return message

    async def fetch_recent(self) -> List[SmsMessage]:
        messages, self._pending = self._pending, []
        return messages
