"""End-to-end tests: inbox file to stored, forwarded history on disk."""

import json

import pytest

from otplink.core.settings import AppSettings
from otplink.models.configuration import Configuration
from otplink.models.otp_record import ForwardingMethod
from otplink.repositories import ConfigRepository, JsonFileStore, OTPRecordRepository
from otplink.services.forwarding import ForwardingDispatcher, WebhookChannel
from otplink.services.otp import MessageProcessor
from otplink.services.otp_service import OTPService, create_otp_service
from otplink.services.sms import JsonInboxSource, SmsListener

pytestmark = pytest.mark.integration

WEBHOOK_URL = "https://hooks.example.com/otp"


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


def _service(data_dir, session, clock) -> OTPService:
    store = JsonFileStore(data_dir)
    records = OTPRecordRepository(store)
    return OTPService(
        config_repository=ConfigRepository(store),
        record_repository=records,
        processor=MessageProcessor(clock=clock),
        dispatcher=ForwardingDispatcher(
            records, [WebhookChannel(session_getter=lambda: session)], clock=clock
        ),
    )


@pytest.mark.asyncio
async def test_inbox_to_webhook(tmp_path, data_dir, make_session, clock):
    session = make_session(status=200)
    service = _service(data_dir, session, clock)
    await service.save_config(Configuration(webhook_url=WEBHOOK_URL))

    inbox = tmp_path / "inbox.json"
    inbox.write_text(
        json.dumps(
            [
                {"address": "+905551234567", "body": "Your OTP is 123456", "date": 2000},
                {"address": "+905551234567", "body": "Your OTP is 123456", "date": 2500},
                {"address": "MOM", "body": "Dinner at 7?", "date": 3000},
            ]
        ),
        encoding="utf-8",
    )
    listener = SmsListener(JsonInboxSource(inbox), service)
    listener._last_seen = 1000

    assert await listener.poll_once() == 1
    assert await listener.poll_once() == 0

    assert len(session.calls) == 1
    assert session.calls[0]["url"] == WEBHOOK_URL
    assert session.calls[0]["json"]["otp"] == "123456"

    stored = json.loads((data_dir / "otp_link_records.json").read_text(encoding="utf-8"))
    assert len(stored) == 1
    assert stored[0]["forwarded"] is True
    assert stored[0]["forwardingMethod"] == "webhook"


@pytest.mark.asyncio
async def test_second_process_sees_forwarded_state(data_dir, make_session, clock):
    """A worker with its own caches does not resend what another worker forwarded."""
    first_session = make_session(status=200)
    first = _service(data_dir, first_session, clock)
    await first.save_config(Configuration(webhook_url=WEBHOOK_URL))
    record = await first.handle_sms("BANK", "Your login code is 4821")

    second_session = make_session(status=200)
    second = _service(data_dir, second_session, clock)

    assert await second.forward_now(record.id) is True
    duplicate = await second.handle_sms("BANK", "Your login code is 4821")

    assert duplicate.forwarded is True
    assert duplicate.forwarding_method == ForwardingMethod.WEBHOOK
    assert len(first_session.calls) == 1
    assert second_session.calls == []


@pytest.mark.asyncio
async def test_failed_webhook_then_manual_retry(data_dir, make_session, clock):
    session = make_session(status=500)
    service = _service(data_dir, session, clock)
    await service.save_config(Configuration(webhook_url=WEBHOOK_URL))

    record = await service.handle_sms("BANK", "verification code 55512")
    assert record.forwarded is False

    session.status = 200
    assert await service.forward_now(record.id) is True
    assert (await service.get_record(record.id)).forwarded is True
    assert len(session.calls) == 2


@pytest.mark.asyncio
async def test_history_survives_restart(tmp_path):
    settings = AppSettings(_env_file=None, data_dir=tmp_path)

    service = create_otp_service(settings)
    await service.add_keyword("pin")
    record = await service.handle_sms("BANK", "PIN 9999")

    restarted = create_otp_service(settings)
    assert "pin" in (await restarted.get_config()).keywords
    assert [r.id for r in await restarted.list_records()] == [record.id]
