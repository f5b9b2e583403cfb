"""Application services."""

from .otp_service import OTPService, create_otp_service

__all__ = ["OTPService", "create_otp_service"]
