"""
Test configuration and fixtures for the flight relay test suite.
"""

import os

# Set environment before any flightrelay module loads its configuration
os.environ.setdefault("SERVER_PORT", "3000")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_LEVEL", "DEBUG")
os.environ.setdefault("LOGGING_FORMAT", "human")

import pytest  # noqa: E402

from flightrelay.config.models import RelayConfig  # noqa: E402
from flightrelay.realtime.client_registry import ClientRegistry  # noqa: E402
from flightrelay.realtime.connection_manager import ConnectionManager  # noqa: E402
from flightrelay.realtime.connection_models import ClientRecord  # noqa: E402
from flightrelay.realtime.messaging.message_broadcaster import MessageBroadcaster  # noqa: E402
from flightrelay.tests.fakes import CHAT_TIMESTAMP_MS, FakeChannel, FakeClock, SequentialIds  # noqa: E402


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually advanced monotonic clock."""
    return FakeClock()


@pytest.fixture
def registry() -> ClientRegistry:
    """Provide an empty client registry."""
    return ClientRegistry()


@pytest.fixture
def broadcaster(registry) -> MessageBroadcaster:
    """Provide a broadcaster over the registry fixture."""
    return MessageBroadcaster(registry)


@pytest.fixture
def make_record(fake_clock):
    """Factory building ClientRecords with a FakeChannel stamped at the fake clock time."""

    def _make(connection_id: str, channel: FakeChannel | None = None, **kwargs) -> ClientRecord:
        now = fake_clock()
        kwargs.setdefault("connected_at", now)
        kwargs.setdefault("last_update", now)
        return ClientRecord(connection_id=connection_id, channel=channel or FakeChannel(), **kwargs)

    return _make


@pytest.fixture
def relay_config() -> RelayConfig:
    """Provide relay settings with the standard sweep interval and stale timeout."""
    return RelayConfig(sweep_interval=10.0, stale_timeout=30.0, max_message_size=64 * 1024, send_queue_size=256)


@pytest.fixture
def connection_manager(relay_config, fake_clock) -> ConnectionManager:
    """Provide a connection manager with deterministic clocks and ids."""
    return ConnectionManager(
        relay_config,
        clock=fake_clock,
        wall_clock=lambda: CHAT_TIMESTAMP_MS,
        id_factory=SequentialIds(),
    )
