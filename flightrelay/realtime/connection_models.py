"""
Data models for connection management.

This module defines the per-connection state tracked by the client registry.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .channel import Channel


@dataclass
class ClientRecord:
    """
    State for one live connection.

    callsign and aircraft stay None until the client's join message has been
    processed. last_update is a monotonic timestamp refreshed by position
    updates; it starts at the connection time.
    """

    connection_id: str
    channel: "Channel"
    connected_at: float
    last_update: float
    callsign: str | None = None
    aircraft: str | None = None

    @property
    def has_joined(self) -> bool:
        """Whether a join message has been processed for this connection."""
        return self.callsign is not None

    def to_player_entry(self) -> dict[str, Any]:
        """Describe this client as an entry of a player_list message."""
        return {"clientId": self.connection_id, "callsign": self.callsign, "aircraft": self.aircraft}
