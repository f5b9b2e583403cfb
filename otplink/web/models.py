"""Request and response models for the HTTP surface."""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from otplink.constants import OTP


class SMSPayload(BaseModel):
    """
    Inbound SMS from a forwarder app.

    Accepted shapes::

        {"from": "+905551234567", "text": "Your code is 123456"}
        {"sender": "BANK", "body": "Your code is 123456"}
    """

    sender: str = Field(
        default=OTP.UNKNOWN_SENDER,
        validation_alias=AliasChoices("from", "sender", "phone"),
        description="Sender address",
    )
    text: str = Field(
        ...,
        validation_alias=AliasChoices("text", "body", "message"),
        description="SMS message text",
    )
    timestamp: Optional[str] = Field(None, description="Message timestamp (informational)")


class OTPResponse(BaseModel):
    success: bool
    otp: Optional[str] = None
    forwarded: bool = False
    message: str


class OTPRecordResponse(BaseModel):
    """One history entry, serialized the way it is stored."""

    id: str
    otp: str
    sender: str
    message: str
    timestamp: str
    source: str
    forwarded: bool
    forwardingMethod: Optional[str] = None


class OTPHistoryResponse(BaseModel):
    count: int
    records: List[OTPRecordResponse]


class ForwardResponse(BaseModel):
    id: str
    forwarded: bool
    forwardingMethod: Optional[str] = None
