"""Inbound SMS and OTP history routes."""

from fastapi import APIRouter, Depends
from loguru import logger

from otplink.services.otp_service import OTPService
from otplink.utils.masking import mask_otp, mask_sender

from ..dependencies import get_service
from ..models import ForwardResponse, OTPHistoryResponse, OTPRecordResponse, OTPResponse, SMSPayload

router = APIRouter(prefix="/api", tags=["otp"])


@router.post("/sms", response_model=OTPResponse)
async def receive_sms(
    payload: SMSPayload, service: OTPService = Depends(get_service)
) -> OTPResponse:
    """
    Receive an SMS from a forwarder app.

    Expected payload format:
    {
        "from": "+905551234567",
        "text": "Your verification code is 123456"
    }
    """
    logger.debug(f"Inbound SMS from {mask_sender(payload.sender)}")
    record = await service.handle_sms(payload.sender, payload.text)

    if record is None:
        return OTPResponse(success=False, message="No new OTP found in message")

    return OTPResponse(
        success=True,
        otp=mask_otp(record.otp),
        forwarded=record.forwarded,
        message="OTP extracted and forwarded" if record.forwarded else "OTP extracted",
    )


@router.get("/otps", response_model=OTPHistoryResponse)
async def list_otps(service: OTPService = Depends(get_service)) -> OTPHistoryResponse:
    """OTP history, newest first."""
    records = await service.list_records()
    return OTPHistoryResponse(
        count=len(records),
        records=[OTPRecordResponse(**record.to_dict()) for record in records],
    )


@router.post("/otps/{record_id}/forward", response_model=ForwardResponse)
async def forward_otp(
    record_id: str, service: OTPService = Depends(get_service)
) -> ForwardResponse:
    """Forward a stored OTP now; 404 when the id is unknown."""
    forwarded = await service.forward_now(record_id)
    record = await service.get_record(record_id)
    method = record.forwarding_method if record else None
    return ForwardResponse(
        id=record_id,
        forwarded=forwarded,
        forwardingMethod=method.value if method else None,
    )
