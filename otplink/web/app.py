"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException

from otplink import __version__
from otplink.core.exceptions import OTPLinkError
from otplink.services.otp_service import OTPService
from otplink.services.sms.listener import SmsListener

from .exception_handlers import (
    http_exception_handler,
    otplink_exception_handler,
    validation_exception_handler,
)
from .routes import health_router, otp_router


def create_app(service: OTPService, listener: Optional[SmsListener] = None) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        service: Service the routes delegate to
        listener: Optional SMS listener started and stopped with the app

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("OTPLink web application starting up...")
        if listener is not None:
            await listener.start()
        try:
            yield
        finally:
            if listener is not None:
                await listener.stop()
            logger.info("OTPLink web application shut down")

    app = FastAPI(
        title="OTPLink",
        description="OTP detection and forwarding",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.otp_service = service
    app.state.sms_listener = listener

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OTPLinkError, otplink_exception_handler)

    app.include_router(otp_router)
    app.include_router(health_router)
    return app
