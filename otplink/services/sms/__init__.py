"""SMS intake: sources, permission precondition and the poll loop."""

from .listener import SmsListener
from .permissions import PermissionProvider, StaticPermissionProvider
from .sources import JsonInboxSource, QueueSmsSource, SmsMessage, SmsSource

__all__ = [
    "SmsListener",
    "PermissionProvider",
    "StaticPermissionProvider",
    "JsonInboxSource",
    "QueueSmsSource",
    "SmsMessage",
    "SmsSource",
]
