"""Repository for the persisted user configuration."""

from loguru import logger

from otplink.constants import StorageKeys
from otplink.core.exceptions import StorageError
from otplink.models.configuration import Configuration

from .kv_store import KeyValueStore


class ConfigRepository:
    """Load and save :class:`Configuration` through a key-value store."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def load(self) -> Configuration:
        """
        Load configuration, falling back to defaults on first run.

        Raises:
            StorageError: If the stored value is not a JSON object
            InvalidConfigError: If the stored value fails validation
        """
        data = await self._store.get_item(StorageKeys.CONFIG)
        if data is None:
            logger.debug("No saved configuration, using defaults")
            return Configuration()
        if not isinstance(data, dict):
            raise StorageError("Stored configuration is not an object", key=StorageKeys.CONFIG)
        return Configuration.from_dict(data)

    async def save(self, config: Configuration) -> None:
        """Persist configuration."""
        await self._store.set_item(StorageKeys.CONFIG, config.to_dict())
        logger.info("Configuration saved")

    async def reset(self) -> Configuration:
        """Replace the stored configuration with defaults."""
        config = Configuration()
        await self.save(config)
        return config
