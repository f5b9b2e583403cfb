"""Flat key-value storage backends.

Values are JSON-serialisable objects. The file backend keeps one JSON
document per key under a data directory and replaces files atomically.
"""

import asyncio
import copy
import json
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

from otplink.core.exceptions import StorageError

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """Abstract base class for key-value backends."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[Any]:
        """
        Get the value stored under ``key``.

        Returns:
            Stored value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        pass


class InMemoryStore(KeyValueStore):
    """In-memory backend (single process, lost on exit)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get_item(self, key: str) -> Optional[Any]:
        # Copies keep callers from mutating stored state in place
        return copy.deepcopy(self._data.get(key))

    async def set_item(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """File backend storing each key as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize file store.

        Args:
            data_dir: Directory for the JSON files (created on first write)
        """
        self.data_dir = Path(data_dir)

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid storage key: {key!r}", key=key)
        return self.data_dir / f"{key}.json"

    def _read(self, path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, path: Path, value: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get_item(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt JSON in {path}: {e}")
            raise StorageError(f"Corrupt data for key {key!r}", key=key) from e
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read key {key!r}", key=key, recoverable=True) from e

    async def set_item(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write key {key!r}", key=key, recoverable=True) from e

    async def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            raise StorageError(f"Failed to remove key {key!r}", key=key, recoverable=True) from e
