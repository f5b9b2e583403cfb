"""Utility helpers."""

from .masking import mask_email, mask_otp, mask_sender, mask_url

__all__ = ["mask_email", "mask_otp", "mask_sender", "mask_url"]
