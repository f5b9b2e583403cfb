"""Persistence layer: key-value backends and repositories."""

from .config_repository import ConfigRepository
from .kv_store import InMemoryStore, JsonFileStore, KeyValueStore
from .otp_record_repository import OTPRecordRepository

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "ConfigRepository",
    "OTPRecordRepository",
]
