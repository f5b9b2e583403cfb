"""Email forwarding channel."""

from email.mime.text import MIMEText

import aiosmtplib
from loguru import logger

from otplink.constants import Forwarding
from otplink.core.exceptions import DeliveryFailedError, InvalidConfigError
from otplink.models.configuration import Configuration, EmailSettings
from otplink.models.otp_record import ForwardingMethod, OTPRecord, format_timestamp
from otplink.utils.masking import mask_email

from ..base import EmailSender, ForwardingChannel, OutgoingEmail, SendOutcome


def validate_email_settings(settings: EmailSettings) -> None:
    """
    Check that ``settings`` can be used to send mail.

    Raises:
        InvalidConfigError: If recipient or SMTP host is missing
    """
    if not settings.recipient:
        raise InvalidConfigError("Email recipient is not configured", field="emailSettings.recipient")
    if not settings.smtp_host:
        raise InvalidConfigError("SMTP host is not configured", field="emailSettings.smtpHost")


def compose_otp_email(record: OTPRecord, recipient: str) -> OutgoingEmail:
    """Compose the notification email for ``record``."""
    subject = f"{Forwarding.EMAIL_SUBJECT_PREFIX} - OTP: {record.otp} from {record.sender}"
    body = (
        f"OTP: {record.otp}\n"
        f"From: {record.sender}\n"
        f"Message: {record.message}\n"
        f"Time: {format_timestamp(record.timestamp)}\n"
        f"\n"
        f"Sent by {Forwarding.EMAIL_SUBJECT_PREFIX}"
    )
    return OutgoingEmail(recipient=recipient, subject=subject, body=body)


class SmtpEmailSender(EmailSender):
    """Send mail over SMTP with aiosmtplib."""

    def __init__(self, timeout_seconds: float = Forwarding.SMTP_TIMEOUT_SECONDS):
        self._timeout = timeout_seconds

    async def send(self, email: OutgoingEmail, settings: EmailSettings) -> SendOutcome:
        validate_email_settings(settings)

        sender_address = settings.username if "@" in settings.username else settings.recipient
        message = MIMEText(email.body, "plain", "utf-8")
        message["From"] = sender_address
        message["To"] = email.recipient
        message["Subject"] = email.subject

        implicit_tls = settings.smtp_port == Forwarding.IMPLICIT_TLS_PORT
        try:
            async with aiosmtplib.SMTP(
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                use_tls=implicit_tls,
                start_tls=None if implicit_tls else True,
                timeout=self._timeout,
            ) as smtp:
                if settings.username:
                    await smtp.login(settings.username, settings.password)
                await smtp.send_message(message)
        except (aiosmtplib.SMTPException, OSError, TimeoutError) as e:
            # Exception text only; never the settings, which hold the password
            logger.error(f"SMTP delivery to {mask_email(email.recipient)} failed: {e}")
            return SendOutcome.failure(
                DeliveryFailedError(f"SMTP delivery failed: {e}", channel="email")
            )

        logger.info(f"OTP forwarded via email to {mask_email(email.recipient)}")
        return SendOutcome.success(email.recipient)


class EmailChannel(ForwardingChannel):
    """Forward detected OTPs by email."""

    def __init__(self, sender: EmailSender):
        """
        Initialize email channel.

        Args:
            sender: Email delivery capability
        """
        self._sender = sender

    @property
    def method(self) -> ForwardingMethod:
        return ForwardingMethod.EMAIL

    def is_configured(self, config: Configuration) -> bool:
        return config.email_enabled

    async def send(self, record: OTPRecord, config: Configuration) -> SendOutcome:
        settings = config.email_settings
        email = compose_otp_email(record, settings.recipient)
        return await self._sender.send(email, settings)
