"""Application constants."""

from .otp import OTP, Forwarding, Listener, StorageKeys

__all__ = ["OTP", "Forwarding", "Listener", "StorageKeys"]
