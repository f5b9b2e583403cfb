"""Forwarding channel implementations."""

from .email import EmailChannel, SmtpEmailSender, compose_otp_email, validate_email_settings
from .webhook import WebhookChannel, build_webhook_payload

__all__ = [
    "EmailChannel",
    "SmtpEmailSender",
    "WebhookChannel",
    "build_webhook_payload",
    "compose_otp_email",
    "validate_email_settings",
]
