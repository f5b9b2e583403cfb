"""Health check route."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from otplink import __version__
from otplink.services.sms.listener import SmsListener

from ..dependencies import get_listener

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    listener: Optional[SmsListener] = Depends(get_listener),
) -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Service status plus listener/heartbeat state when a listener runs
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "listener": listener.status() if listener is not None else None,
    }
