"""
Connection manager for the flight relay.

The manager owns one ClientRegistry and wires the components that share it:
the message router, the broadcaster and the liveness sweeper. Transports call
accept() for each new channel, handle_message() for each received frame and
handle_close() when the channel ends.
"""

import time
import uuid
from collections.abc import Callable
from typing import Any

from ..config.models import RelayConfig
from ..exceptions import DuplicateConnectionError
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once
from .channel import CLOSE_CODE_GOING_AWAY, Channel
from .client_registry import ClientRegistry
from .connection_models import ClientRecord
from .envelope import ConnectedEvent, PlayerLeftEvent
from .maintenance.connection_sweeper import ConnectionSweeper
from .message_router import MessageRouter, RouteResult, wall_clock_ms
from .message_validator import get_message_validator
from .messaging.message_broadcaster import MessageBroadcaster

logger = get_logger(__name__)


def generate_connection_id() -> str:
    """Generate an opaque connection id (random 128-bit, hex encoded)."""
    return uuid.uuid4().hex


class ConnectionManager:
    """
    Manages live client connections for the relay.

    Components:
    - ClientRegistry: the shared, lock-guarded map of live clients
    - MessageRouter: decodes and dispatches inbound frames
    - MessageBroadcaster: fans outbound messages out to registry snapshots
    - ConnectionSweeper: evicts clients whose position updates stopped
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], int] = wall_clock_ms,
        id_factory: Callable[[], str] = generate_connection_id,
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            config: Relay settings (defaults apply when omitted)
            clock: Monotonic clock for liveness timestamps
            wall_clock: Epoch-millisecond clock for chat timestamps
            id_factory: Connection id generator
        """
        self.config = config or RelayConfig()
        self.clock = clock
        self.id_factory = id_factory

        self.registry = ClientRegistry()
        self.broadcaster = MessageBroadcaster(self.registry)
        self.router = MessageRouter(
            self.registry,
            self.broadcaster,
            validator=get_message_validator(self.config.max_message_size),
            clock=clock,
            wall_clock=wall_clock,
        )
        self.sweeper = ConnectionSweeper(
            self.registry,
            sweep_interval=self.config.sweep_interval,
            stale_timeout=self.config.stale_timeout,
            clock=clock,
        )

        self.total_connections = 0

    def accept(self, channel: Channel) -> str:
        """
        Register a newly accepted channel.

        The new client is sent a connected message carrying its id and the
        client count including itself.

        Returns:
            str: The connection id issued to the channel

        Raises:
            DuplicateConnectionError: If the id factory produced a live id
        """
        now = self.clock()
        connection_id = self.id_factory()
        record = ClientRecord(connection_id=connection_id, channel=channel, connected_at=now, last_update=now)
        try:
            total_clients = self.registry.insert(record)
        except DuplicateConnectionError:
            channel.close(CLOSE_CODE_GOING_AWAY, "Connection id collision")
            raise

        self.total_connections += 1
        logger.info("Client connected", target_id=connection_id, total_clients=total_clients)
        self.broadcaster.send_to(connection_id, ConnectedEvent(client_id=connection_id, total_clients=total_clients))
        return connection_id

    def handle_message(self, connection_id: str, data: str | bytes) -> RouteResult:
        """Route one raw frame received from connection_id."""
        return self.router.route_raw(connection_id, data)

    def handle_close(self, connection_id: str) -> bool:
        """
        Handle the end of a connection.

        Announces player_left to the remaining clients. A connection that was
        already removed (for example by the sweeper) is a no-op.

        Returns:
            bool: True if a live connection was removed
        """
        record = self.registry.remove(connection_id)
        if record is None:
            logger.debug("Close for unregistered connection ignored", target_id=connection_id)
            return False

        logger.info("Client disconnected", target_id=connection_id, callsign=record.callsign or "Unknown")
        self.broadcaster.broadcast(
            PlayerLeftEvent(client_id=connection_id, callsign=record.callsign), exclude_id=connection_id
        )
        return True

    def handle_transport_error(self, connection_id: str, error: Exception) -> bool:
        """Treat a channel failure as a close of that connection."""
        log_exception_once(
            logger,
            "error",
            "Transport error on connection",
            exc=error,
            target_id=connection_id,
            exc_info=error,
        )
        return self.handle_close(connection_id)

    def get_stats(self) -> dict[str, Any]:
        """Read-only telemetry for status reporting."""
        return {
            "connected_clients": self.registry.size(),
            "joined_clients": self.registry.joined_count(),
            "total_connections": self.total_connections,
            "total_evictions": self.sweeper.total_evictions,
        }

    def start(self) -> None:
        """Start background maintenance. Must be called from the event loop."""
        self.sweeper.start()

    async def shutdown(self) -> None:
        """Stop background maintenance and hard-close every remaining channel."""
        await self.sweeper.stop()
        for connection_id, record in self.registry.snapshot():
            self.registry.remove(connection_id)
            try:
                record.channel.close(CLOSE_CODE_GOING_AWAY, "Server shutting down")
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning("Error closing channel during shutdown", target_id=connection_id, error=str(e))
        logger.info("Connection manager shut down", total_connections=self.total_connections)
