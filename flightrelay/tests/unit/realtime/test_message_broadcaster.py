"""
Tests for the message broadcaster.
"""

# pylint: disable=redefined-outer-name

import json

from flightrelay.realtime.envelope import ChatEvent, ConnectedEvent
from flightrelay.tests.fakes import FakeChannel


def _register(registry, make_record, *connection_ids, **channel_kwargs):
    channels = {}
    for connection_id in connection_ids:
        channels[connection_id] = FakeChannel(**channel_kwargs)
        registry.insert(make_record(connection_id, channels[connection_id]))
    return channels


def test_broadcast_reaches_every_client(registry, broadcaster, make_record):
    """Test a broadcast without exclusion is delivered to all open channels."""
    channels = _register(registry, make_record, "a", "b", "c")

    stats = broadcaster.broadcast(ChatEvent(callsign="A1", message="hi", timestamp=1))

    assert stats["delivered"] == 3
    for channel in channels.values():
        assert channel.messages == [{"type": "chat", "callsign": "A1", "message": "hi", "timestamp": 1}]


def test_broadcast_serializes_once(registry, broadcaster, make_record):
    """Test every recipient receives the identical frame."""
    channels = _register(registry, make_record, "a", "b")

    broadcaster.broadcast(ChatEvent(callsign="A1", message="hi", timestamp=1))

    assert channels["a"].sent == channels["b"].sent


def test_broadcast_excludes_one_client(registry, broadcaster, make_record):
    """Test the excluded client receives nothing."""
    channels = _register(registry, make_record, "a", "b", "c")

    stats = broadcaster.broadcast(ChatEvent(callsign="A1", message="hi", timestamp=1), exclude_id="b")

    assert channels["b"].sent == []
    assert len(channels["a"].sent) == 1
    assert len(channels["c"].sent) == 1
    assert stats["excluded"] == 1
    assert stats["delivered"] == 2


def test_broadcast_skips_channels_not_ready(registry, broadcaster, make_record):
    """Test closed channels are skipped and left registered."""
    channels = _register(registry, make_record, "a")
    closed = FakeChannel(open_=False)
    registry.insert(make_record("closed", closed))

    stats = broadcaster.broadcast(ChatEvent(callsign=None, message="hi", timestamp=1))

    assert closed.sent == []
    assert len(channels["a"].sent) == 1
    assert stats["skipped_not_ready"] == 1
    assert "closed" in registry


def test_failing_channel_does_not_affect_others(registry, broadcaster, make_record):
    """Test one channel raising on send does not stop delivery to the rest."""
    channels = _register(registry, make_record, "a", "c")
    registry.insert(make_record("b", FakeChannel(fail_on_send=True)))

    stats = broadcaster.broadcast(ChatEvent(callsign=None, message="hi", timestamp=1))

    assert stats["failed"] == 1
    assert stats["delivered"] == 2
    assert all(len(channel.sent) == 1 for channel in channels.values())


def test_broadcast_to_empty_registry(broadcaster):
    """Test broadcasting with no clients is a no-op."""
    stats = broadcaster.broadcast(ChatEvent(callsign=None, message="hi", timestamp=1))

    assert stats["total_targets"] == 0
    assert stats["delivered"] == 0
    assert stats["message_type"] == "chat"


class TestSendTo:
    """Test direct sends."""

    def test_send_to_registered_client(self, registry, broadcaster, make_record):
        """Test a direct send reaches only its target."""
        channels = _register(registry, make_record, "a", "b")

        assert broadcaster.send_to("a", ConnectedEvent(client_id="a", total_clients=2)) is True

        assert json.loads(channels["a"].sent[0]) == {"type": "connected", "clientId": "a", "totalClients": 2}
        assert channels["b"].sent == []

    def test_send_to_unknown_client(self, broadcaster):
        """Test a direct send to an unregistered id returns False."""
        assert broadcaster.send_to("missing", ConnectedEvent(client_id="x", total_clients=0)) is False

    def test_send_to_closed_channel(self, registry, broadcaster, make_record):
        """Test a direct send to a closed channel is skipped."""
        channel = FakeChannel(open_=False)
        registry.insert(make_record("a", channel))

        assert broadcaster.send_to("a", ConnectedEvent(client_id="a", total_clients=1)) is False
        assert channel.sent == []

    def test_send_to_failing_channel(self, registry, broadcaster, make_record):
        """Test a send error is reported as False rather than raised."""
        registry.insert(make_record("a", FakeChannel(fail_on_send=True)))

        assert broadcaster.send_to("a", ConnectedEvent(client_id="a", total_clients=1)) is False
