"""OTPLink - detect one-time passwords in SMS and forward them."""

__version__ = "1.0.0"
