"""Forwarding subsystem - webhook and email delivery of detected OTPs."""

from .base import EmailSender, ForwardingChannel, OutgoingEmail, SendOutcome
from .channels.email import EmailChannel, SmtpEmailSender
from .channels.webhook import WebhookChannel
from .dispatcher import ForwardingDispatcher

__all__ = [
    "EmailSender",
    "ForwardingChannel",
    "OutgoingEmail",
    "SendOutcome",
    "EmailChannel",
    "SmtpEmailSender",
    "WebhookChannel",
    "ForwardingDispatcher",
]
