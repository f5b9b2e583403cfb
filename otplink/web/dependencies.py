"""Dependency injection helpers for routes."""

from typing import Optional

from fastapi import HTTPException, Request

from otplink.services.otp_service import OTPService
from otplink.services.sms.listener import SmsListener


def get_service(request: Request) -> OTPService:
    """
    Return the OTP service attached to the app.

    Raises:
        HTTPException: 503 if the app was built without a service
    """
    service = getattr(request.app.state, "otp_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="OTP service not initialized")
    return service


def get_listener(request: Request) -> Optional[SmsListener]:
    return getattr(request.app.state, "sms_listener", None)
