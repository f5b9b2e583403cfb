"""Tests for the OTP record model."""

from datetime import datetime, timezone

import pytest

from otplink.models.otp_record import (
    ForwardingMethod,
    OTPRecord,
    OTPSource,
    format_timestamp,
    parse_timestamp,
)


def test_round_trip_preserves_fields_to_the_millisecond():
    record = OTPRecord(
        otp="123456",
        sender="+905551234567",
        message="Your OTP is 123456",
        timestamp=datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc),
    )
    record.mark_forwarded(ForwardingMethod.WEBHOOK)

    data = record.to_dict()
    restored = OTPRecord.from_dict(data)

    assert data["timestamp"] == "2024-01-15T10:30:00.123Z"
    assert data["forwardingMethod"] == "webhook"
    assert restored == record


def test_default_timestamp_has_millisecond_precision():
    record = OTPRecord(otp="1234", sender="A", message="code 1234")
    assert record.timestamp.microsecond % 1000 == 0
    assert record.timestamp.tzinfo is not None


def test_empty_sender_becomes_unknown():
    assert OTPRecord(otp="1234", sender="", message="x").sender == "Unknown"


def test_method_requires_forwarded():
    with pytest.raises(ValueError):
        OTPRecord(
            otp="1234", sender="A", message="x", forwarding_method=ForwardingMethod.EMAIL
        )


def test_from_dict_defaults():
    record = OTPRecord.from_dict(
        {"id": "abc", "otp": "1234", "timestamp": "2024-01-15T10:30:00.000Z", "message": "m"}
    )
    assert record.sender == "Unknown"
    assert record.source == OTPSource.SMS
    assert record.forwarded is False
    assert record.forwarding_method is None


def test_from_dict_drops_method_when_not_forwarded():
    record = OTPRecord.from_dict(
        {
            "id": "abc",
            "otp": "1234",
            "sender": "A",
            "message": "m",
            "timestamp": "2024-01-15T10:30:00.000Z",
            "forwarded": False,
            "forwardingMethod": "email",
        }
    )
    assert record.forwarding_method is None


def test_parse_timestamp_accepts_offset_and_naive():
    aware = parse_timestamp("2024-01-15T12:30:00.500+02:00")
    naive = parse_timestamp("2024-01-15T10:30:00.500")
    assert aware == naive
    assert format_timestamp(aware) == "2024-01-15T10:30:00.500Z"
