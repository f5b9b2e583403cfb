"""Permission precondition for starting the SMS listener."""

from abc import ABC, abstractmethod

from loguru import logger


class PermissionProvider(ABC):
    """Grants (or refuses) access to the device's SMS."""

    @abstractmethod
    async def ensure_granted(self) -> bool:
        """
        Request any missing permission.

        Returns:
            True if SMS access is available
        """
        pass


class StaticPermissionProvider(PermissionProvider):
    """Fixed answer, for hosts without a permission model."""

    def __init__(self, granted: bool = True):
        self.granted = granted

    async def ensure_granted(self) -> bool:
        if not self.granted:
            logger.warning("SMS permission not granted")
        return self.granted
