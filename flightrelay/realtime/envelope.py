"""
Message shapes exchanged with flight-sim clients.

Inbound messages form a closed set discriminated on ``type``; anything else
decodes to UnknownMessage so callers can tell an unrecognized kind apart from
a malformed payload. Outbound messages are serialized with the camelCase field
names the clients expect (clientId, totalClients).
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Keys a position payload may not override when it is flattened into the
# outbound position message.
RESERVED_POSITION_KEYS = frozenset({"type", "clientId", "callsign"})


class InboundMessage(BaseModel):
    """Base class for decoded client-to-server messages."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class JoinMessage(InboundMessage):
    type: Literal["join"] = "join"
    callsign: str
    aircraft: str


class PositionMessage(InboundMessage):
    type: Literal["position"] = "position"
    # Opaque to the relay; passed through without validation of its contents.
    position: dict[str, Any]


class ChatMessage(InboundMessage):
    type: Literal["chat"] = "chat"
    message: str


class UnknownMessage(InboundMessage):
    """A well-formed message whose type the relay does not handle."""

    type: str


KNOWN_INBOUND_TYPES = frozenset({"join", "position", "chat"})

KnownInbound = Annotated[JoinMessage | PositionMessage | ChatMessage, Field(discriminator="type")]
known_inbound_adapter: TypeAdapter[JoinMessage | PositionMessage | ChatMessage] = TypeAdapter(KnownInbound)


class OutboundMessage(BaseModel):
    """Base class for server-to-client messages."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: str

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible dict sent to clients."""
        return self.model_dump(by_alias=True, mode="json")

    def serialize(self) -> str:
        """Encode the message as the text frame sent to clients."""
        return json.dumps(self.to_wire(), allow_nan=False)


class ConnectedEvent(OutboundMessage):
    type: Literal["connected"] = "connected"
    client_id: str = Field(alias="clientId")
    total_clients: int = Field(alias="totalClients")


class PlayerEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    client_id: str = Field(alias="clientId")
    callsign: str | None
    aircraft: str | None


class PlayerListEvent(OutboundMessage):
    type: Literal["player_list"] = "player_list"
    players: list[PlayerEntry] = Field(default_factory=list)


class PlayerJoinedEvent(OutboundMessage):
    type: Literal["player_joined"] = "player_joined"
    client_id: str = Field(alias="clientId")
    callsign: str | None
    aircraft: str | None


class PositionEvent(OutboundMessage):
    """
    A relayed position update.

    On the wire the position payload is flattened next to type, clientId and
    callsign rather than nested.
    """

    type: Literal["position"] = "position"
    client_id: str = Field(alias="clientId")
    callsign: str | None
    position: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        wire = {key: value for key, value in self.position.items() if key not in RESERVED_POSITION_KEYS}
        wire.update({"type": self.type, "clientId": self.client_id, "callsign": self.callsign})
        return wire


class ChatEvent(OutboundMessage):
    type: Literal["chat"] = "chat"
    callsign: str | None
    message: str
    # Wall-clock epoch milliseconds
    timestamp: int


class PlayerLeftEvent(OutboundMessage):
    type: Literal["player_left"] = "player_left"
    client_id: str = Field(alias="clientId")
    callsign: str | None
