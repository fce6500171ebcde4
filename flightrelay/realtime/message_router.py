"""
Message routing for inbound client messages.

Each decoded message kind maps to one handler through a lookup table instead of
an if/elif chain. Every route returns a RouteResult so that callers and tests
can tell a handled message apart from an unknown kind, a malformed payload, or
a message from a connection that has already gone away.
"""

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import MessageDecodeError, StaleConnectionError
from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import (
    ChatEvent,
    ChatMessage,
    InboundMessage,
    JoinMessage,
    PlayerJoinedEvent,
    PlayerListEvent,
    PositionEvent,
    PositionMessage,
    UnknownMessage,
)
from .message_validator import InboundMessageValidator

if TYPE_CHECKING:
    from .client_registry import ClientRegistry
    from .messaging.message_broadcaster import MessageBroadcaster

logger = get_logger(__name__)


class RouteResult(str, Enum):
    """Outcome of routing one inbound message."""

    HANDLED = "handled"
    UNKNOWN = "unknown"
    INVALID = "invalid"
    STALE = "stale"


def wall_clock_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class MessageRouter:
    """
    Dispatches decoded inbound messages to the join, position and chat handlers.

    Handlers mutate the registry and hand outbound messages to the broadcaster.
    """

    def __init__(
        self,
        registry: "ClientRegistry",
        broadcaster: "MessageBroadcaster",
        validator: InboundMessageValidator | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], int] = wall_clock_ms,
    ) -> None:
        """
        Initialize the router.

        Args:
            registry: Registry of live clients
            broadcaster: Broadcaster used for all outbound messages
            validator: Decoder for raw frames
            clock: Monotonic clock used for liveness timestamps
            wall_clock: Epoch-millisecond clock used for chat timestamps
        """
        self.registry = registry
        self.broadcaster = broadcaster
        self.validator = validator or InboundMessageValidator()
        self.clock = clock
        self.wall_clock = wall_clock
        self._handlers: dict[type[InboundMessage], Callable[[str, Any], RouteResult]] = {
            JoinMessage: self._handle_join,
            PositionMessage: self._handle_position,
            ChatMessage: self._handle_chat,
        }

    def route_raw(self, connection_id: str, data: str | bytes) -> RouteResult:
        """
        Decode a raw frame and route it.

        A frame that cannot be decoded is dropped; the connection is unaffected.
        """
        try:
            message = self.validator.parse_and_validate(data, connection_id=connection_id)
        except MessageDecodeError as e:
            logger.debug("Dropped undecodable message", sender_id=connection_id, error_type=e.error_type)
            return RouteResult.INVALID
        return self.route(connection_id, message)

    def route(self, connection_id: str, message: InboundMessage) -> RouteResult:
        """
        Route a decoded message from connection_id.

        Returns:
            RouteResult describing what happened to the message
        """
        handler = self._handlers.get(type(message))
        if handler is None:
            message_type = message.type if isinstance(message, UnknownMessage) else type(message).__name__
            logger.debug("Ignoring unhandled message type", sender_id=connection_id, message_type=message_type)
            return RouteResult.UNKNOWN
        try:
            return handler(connection_id, message)
        except StaleConnectionError:
            return RouteResult.STALE

    def get_supported_message_types(self) -> list[str]:
        """Message type names this router handles."""
        return [model.model_fields["type"].default for model in self._handlers]

    def _handle_join(self, connection_id: str, message: JoinMessage) -> RouteResult:
        record, others = self.registry.join(connection_id, message.callsign, message.aircraft)
        logger.info("Player joined", sender_id=connection_id, callsign=record.callsign, aircraft=record.aircraft)

        # The joiner's list is built before anyone else hears about the join.
        self.broadcaster.send_to(connection_id, PlayerListEvent(players=others))
        self.broadcaster.broadcast(
            PlayerJoinedEvent(client_id=connection_id, callsign=record.callsign, aircraft=record.aircraft),
            exclude_id=connection_id,
        )
        return RouteResult.HANDLED

    def _handle_position(self, connection_id: str, message: PositionMessage) -> RouteResult:
        record = self.registry.touch(connection_id, self.clock())
        self.broadcaster.broadcast(
            PositionEvent(client_id=connection_id, callsign=record.callsign, position=message.position),
            exclude_id=connection_id,
        )
        return RouteResult.HANDLED

    def _handle_chat(self, connection_id: str, message: ChatMessage) -> RouteResult:
        record = self.registry.get(connection_id)
        if record is None:
            raise StaleConnectionError(connection_id)
        logger.info("Chat message", sender_id=connection_id, callsign=record.callsign, chat_message=message.message)
        # Chat is the one kind echoed back to its sender.
        self.broadcaster.broadcast(
            ChatEvent(callsign=record.callsign, message=message.message, timestamp=self.wall_clock())
        )
        return RouteResult.HANDLED
