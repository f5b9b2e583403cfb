"""Webhook forwarding channel."""

import asyncio
from typing import Any, Callable, Dict, Optional

import aiohttp
from loguru import logger

from otplink.constants import Forwarding
from otplink.core.exceptions import DeliveryFailedError
from otplink.models.configuration import Configuration
from otplink.models.otp_record import ForwardingMethod, OTPRecord, format_timestamp
from otplink.utils.masking import mask_url

from ..base import ForwardingChannel, SendOutcome


def build_webhook_payload(record: OTPRecord) -> Dict[str, Any]:
    """Build the JSON body posted to the webhook."""
    return {
        "otp": record.otp,
        "sender": record.sender,
        "message": record.message,
        "timestamp": format_timestamp(record.timestamp),
    }


class WebhookChannel(ForwardingChannel):
    """POST detected OTPs as JSON to the configured URL."""

    def __init__(
        self,
        session_getter: Optional[Callable[[], aiohttp.ClientSession]] = None,
        timeout_seconds: float = Forwarding.HTTP_TIMEOUT_SECONDS,
    ):
        """
        Initialize webhook channel.

        Args:
            session_getter: Returns a shared client session; a short-lived
                session is opened per request when omitted
            timeout_seconds: Total request timeout
        """
        self._session_getter = session_getter
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def method(self) -> ForwardingMethod:
        return ForwardingMethod.WEBHOOK

    def is_configured(self, config: Configuration) -> bool:
        return config.webhook_enabled

    async def _post(
        self, session: aiohttp.ClientSession, url: str, payload: Dict[str, Any]
    ) -> SendOutcome:
        async with session.post(url, json=payload, timeout=self._timeout) as response:
            if 200 <= response.status < 300:
                logger.info(f"OTP forwarded via webhook to {mask_url(url)} ({response.status})")
                return SendOutcome.success(response.status)

            body = await response.text(errors="replace")
            logger.error(f"Webhook forwarding failed: HTTP {response.status} {body[:200]}")
            return self._failure(
                f"Webhook returned HTTP {response.status}", status=response.status
            )

    def _failure(self, message: str, status: Optional[int] = None) -> SendOutcome:
        return SendOutcome.failure(
            DeliveryFailedError(message, channel=self.method.value, status=status)
        )

    async def send(self, record: OTPRecord, config: Configuration) -> SendOutcome:
        """
        POST ``record`` to ``config.webhook_url``.

        Returns:
            Delivered with the HTTP status on 2xx, failed otherwise
        """
        url = config.webhook_url
        if not url:
            logger.error("Webhook URL is not configured")
            return self._failure("Webhook URL is not configured")

        payload = build_webhook_payload(record)
        try:
            if self._session_getter is not None:
                return await self._post(self._session_getter(), url, payload)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, url, payload)
        except aiohttp.ClientError as e:
            logger.error(f"HTTP client error forwarding via webhook: {e}")
            return self._failure(f"Webhook request failed: {e}")
        except asyncio.TimeoutError:
            logger.error(f"Timeout forwarding via webhook to {mask_url(url)}")
            return self._failure("Webhook request timed out")
        except Exception as e:
            logger.error(f"Failed to forward via webhook to {mask_url(url)}: {e}")
            return self._failure(f"Webhook request failed: {e}")
