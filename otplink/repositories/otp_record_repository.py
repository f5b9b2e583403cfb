"""Repository for OTP record history."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from otplink.constants import OTP, StorageKeys
from otplink.models.otp_record import OTPRecord

from .kv_store import KeyValueStore


class OTPRecordRepository:
    """
    Bounded, newest-first OTP history on top of a key-value store.

    The store is the single source of truth for record state: both the
    foreground listener and any background worker write through here.
    """

    def __init__(self, store: KeyValueStore, limit: int = OTP.HISTORY_LIMIT):
        """
        Initialize repository.

        Args:
            store: Key-value backend
            limit: Maximum number of records kept (oldest dropped first)
        """
        self._store = store
        self._limit = limit
        self._lock = asyncio.Lock()

    async def _read_raw(self) -> List[Dict[str, Any]]:
        raw = await self._store.get_item(StorageKeys.RECORDS)
        return raw if isinstance(raw, list) else []

    @staticmethod
    def _decode(raw: List[Dict[str, Any]]) -> List[OTPRecord]:
        records = []
        for item in raw:
            try:
                records.append(OTPRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed OTP record: {e}")
        return records

    async def save(self, record: OTPRecord) -> None:
        """Prepend a new record and trim the history to the configured limit."""
        async with self._lock:
            raw = await self._read_raw()
            raw.insert(0, record.to_dict())
            await self._store.set_item(StorageKeys.RECORDS, raw[: self._limit])
        logger.debug(f"Saved OTP record {record.id}")

    async def load_all(self) -> List[OTPRecord]:
        """Load all records, newest first."""
        return self._decode(await self._read_raw())

    async def get(self, record_id: str) -> Optional[OTPRecord]:
        """Get a record by ID."""
        for record in await self.load_all():
            if record.id == record_id:
                return record
        return None

    async def update(self, record: OTPRecord) -> bool:
        """
        Replace the stored record with the same ID.

        Returns:
            True if a record was replaced, False if the ID is unknown
        """
        async with self._lock:
            raw = await self._read_raw()
            for index, item in enumerate(raw):
                if item.get("id") == record.id:
                    raw[index] = record.to_dict()
                    await self._store.set_item(StorageKeys.RECORDS, raw)
                    logger.debug(f"Updated OTP record {record.id}")
                    return True
        logger.debug(f"OTP record {record.id} not in history, update skipped")
        return False

    async def find_forwarded_duplicate(
        self, record: OTPRecord, window_seconds: float
    ) -> Optional[OTPRecord]:
        """
        Find a forwarded record for the same code and sender near ``record``.

        Matches the record itself (by ID) if its stored copy is forwarded, or
        any other record with identical otp and sender whose timestamp lies
        within ``window_seconds`` of ``record.timestamp``.
        """
        for stored in await self.load_all():
            if not stored.forwarded:
                continue
            if stored.id == record.id:
                return stored
            if stored.otp == record.otp and stored.sender == record.sender:
                if _seconds_between(stored.timestamp, record.timestamp) <= window_seconds:
                    return stored
        return None

    async def clear(self) -> None:
        """Remove all records."""
        async with self._lock:
            await self._store.remove_item(StorageKeys.RECORDS)
        logger.info("OTP history cleared")


def _seconds_between(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds())
