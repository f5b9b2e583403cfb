"""FastAPI surface for inbound SMS and OTP history."""

from .app import create_app

__all__ = ["create_app"]
