"""Base forwarding types: channel ABCs, send outcomes and the outgoing email."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from otplink.core.exceptions import DeliveryFailedError
from otplink.models.configuration import Configuration, EmailSettings
from otplink.models.otp_record import ForwardingMethod, OTPRecord


@dataclass(frozen=True)
class SendOutcome:
    """
    What a single channel send produced.

    Attributes:
        receipt: Channel-specific proof of delivery (HTTP status, recipient)
        error: Set when the channel could not deliver
    """

    receipt: Any = None
    error: Optional[DeliveryFailedError] = None

    @property
    def delivered(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, receipt: Any = None) -> "SendOutcome":
        return cls(receipt=receipt)

    @classmethod
    def failure(cls, error: DeliveryFailedError) -> "SendOutcome":
        return cls(error=error)


@dataclass(frozen=True)
class OutgoingEmail:
    """A composed email ready to hand to an :class:`EmailSender`."""

    recipient: str
    subject: str
    body: str


class EmailSender(ABC):
    """Capability that delivers a composed email."""

    @abstractmethod
    async def send(self, email: OutgoingEmail, settings: EmailSettings) -> SendOutcome:
        """
        Deliver ``email`` using ``settings``.

        Returns:
            A delivered outcome, or one carrying the DeliveryFailedError

        Raises:
            InvalidConfigError: If ``settings`` cannot be used to send at all
        """
        pass


class ForwardingChannel(ABC):
    """Abstract base class for forwarding channels."""

    @property
    @abstractmethod
    def method(self) -> ForwardingMethod:
        """Forwarding method recorded when this channel delivers."""
        pass

    @abstractmethod
    def is_configured(self, config: Configuration) -> bool:
        """Check whether ``config`` enables this channel."""
        pass

    @abstractmethod
    async def send(self, record: OTPRecord, config: Configuration) -> SendOutcome:
        """
        Deliver ``record`` through this channel.

        Returns:
            A delivered outcome, or one carrying the DeliveryFailedError
        """
        pass
