"""Pytest configuration and common fixtures."""

import asyncio
import os
import sys
import warnings
from pathlib import Path
from typing import Any, Callable, List, Optional, Set

# Set environment variables BEFORE any otplink imports so cached settings
# never pick up a developer's real data or log directories.
os.environ.setdefault("OTPLINK_DATA_DIR", str(Path(__file__).parent / ".data"))
os.environ.setdefault("OTPLINK_LOG_LEVEL", "DEBUG")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from otplink.core.exceptions import DeliveryFailedError, StorageError
from otplink.models.configuration import Configuration
from otplink.models.otp_record import ForwardingMethod, OTPRecord
from otplink.repositories import ConfigRepository, InMemoryStore, OTPRecordRepository
from otplink.services.forwarding import ForwardingChannel, ForwardingDispatcher, SendOutcome
from otplink.services.otp import MessageProcessor
from otplink.services.otp_service import OTPService


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChannel(ForwardingChannel):
    """Forwarding channel that records what it was asked to send."""

    def __init__(
        self,
        method: ForwardingMethod = ForwardingMethod.WEBHOOK,
        succeed: bool = True,
        configured: bool = True,
        delay: float = 0.0,
        raises: Optional[BaseException] = None,
    ):
        self._method = method
        self.succeed = succeed
        self.configured = configured
        self.delay = delay
        self.raises = raises
        self.sent: List[str] = []

    @property
    def method(self) -> ForwardingMethod:
        return self._method

    def is_configured(self, config: Configuration) -> bool:
        return self.configured

    async def send(self, record: OTPRecord, config: Configuration) -> SendOutcome:
        self.sent.append(record.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.succeed:
            return SendOutcome.success(True)
        return SendOutcome.failure(
            DeliveryFailedError(f"{self._method.value} failed", channel=self._method.value)
        )


class FakeStore(InMemoryStore):
    """In-memory store whose writes can be made to fail per key."""

    def __init__(self):
        super().__init__()
        self.failing_keys: Set[str] = set()

    async def set_item(self, key: str, value: Any) -> None:
        if key in self.failing_keys:
            raise StorageError(f"Failed to write {key}", key=key)
        await super().set_item(key, value)


class FakeResponse:
    def __init__(self, status: int, body: bytes = b""):
        self.status = status
        self._body = body

    async def text(self, encoding: str = "utf-8", errors: str = "strict") -> str:
        return self._body.decode(encoding, errors)


class FakeRequestContext:
    def __init__(self, response: FakeResponse, error: Optional[BaseException] = None):
        self._response = response
        self._error = error

    async def __aenter__(self) -> FakeResponse:
        if self._error is not None:
            raise self._error
        return self._response

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class FakeSession:
    """Stands in for ``aiohttp.ClientSession.post``."""

    def __init__(
        self,
        status: int = 200,
        error: Optional[BaseException] = None,
        body: bytes = b"server says no",
    ):
        self.status = status
        self.error = error
        self.body = body
        self.calls: List[dict] = []

    def post(self, url, json=None, timeout=None) -> FakeRequestContext:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        return FakeRequestContext(FakeResponse(self.status, self.body), self.error)


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory for fake aiohttp sessions."""
    return FakeSession


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def store() -> FakeStore:
    """Empty in-memory key-value store."""
    return FakeStore()


@pytest.fixture
def record_repository(store) -> OTPRecordRepository:
    return OTPRecordRepository(store)


@pytest.fixture
def config_repository(store) -> ConfigRepository:
    return ConfigRepository(store)


@pytest.fixture
def make_channel() -> Callable[..., FakeChannel]:
    """Factory for fake forwarding channels."""
    return FakeChannel


@pytest.fixture
def make_dispatcher(record_repository, clock) -> Callable[..., ForwardingDispatcher]:
    """Factory for dispatchers over the shared record repository and fake clock."""

    def _make(channels: List[ForwardingChannel]) -> ForwardingDispatcher:
        return ForwardingDispatcher(record_repository, channels, clock=clock)

    return _make


@pytest.fixture
def make_service(
    config_repository, record_repository, make_dispatcher, clock
) -> Callable[..., OTPService]:
    """Factory for OTP services wired to in-memory storage and the fake clock."""

    def _make(channels: Optional[List[ForwardingChannel]] = None) -> OTPService:
        return OTPService(
            config_repository=config_repository,
            record_repository=record_repository,
            processor=MessageProcessor(clock=clock),
            dispatcher=make_dispatcher(channels if channels is not None else [FakeChannel()]),
        )

    return _make
