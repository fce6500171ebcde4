"""
Message broadcasting for the relay.

A broadcast serializes its message once and hands the same text frame to
every selected channel of a registry snapshot. Channels that are not ready are
skipped; they are reclaimed only through the close and sweep paths.
"""

from typing import TYPE_CHECKING, Any

from ...structured_logging.enhanced_logging_config import get_logger
from ..envelope import OutboundMessage

if TYPE_CHECKING:
    from ..client_registry import ClientRegistry

logger = get_logger(__name__)


class MessageBroadcaster:
    """
    Delivers outbound messages to registered clients.

    This class provides:
    - Broadcast to all clients, or to all but one
    - Direct sends to a single connection
    - Delivery statistics per broadcast
    """

    def __init__(self, registry: "ClientRegistry") -> None:
        """
        Initialize the message broadcaster.

        Args:
            registry: ClientRegistry whose snapshot defines the recipients
        """
        self.registry = registry

    def broadcast(self, message: OutboundMessage, exclude_id: str | None = None) -> dict[str, Any]:
        """
        Send a message to every registered client except exclude_id.

        The registry lock is only held while taking the snapshot; sends happen
        afterwards and never block (channels queue their own output).

        Args:
            message: The message to deliver
            exclude_id: Connection id that must not receive the message

        Returns:
            dict: Broadcast delivery statistics
        """
        payload = message.serialize()
        recipients = self.registry.snapshot()

        stats: dict[str, Any] = {
            "message_type": message.type,
            "total_targets": len(recipients),
            "excluded": 0,
            "skipped_not_ready": 0,
            "delivered": 0,
            "failed": 0,
        }

        for connection_id, record in recipients:
            if connection_id == exclude_id:
                stats["excluded"] += 1
                continue
            if not record.channel.is_open():
                stats["skipped_not_ready"] += 1
                continue
            try:
                record.channel.send(payload)
                stats["delivered"] += 1
            except Exception as e:  # pylint: disable=broad-exception-caught
                # One failing channel must not affect delivery to the others.
                stats["failed"] += 1
                logger.warning(
                    "Error sending broadcast to client",
                    target_id=connection_id,
                    message_type=message.type,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        logger.debug("broadcast delivery stats", **stats)
        return stats

    def send_to(self, connection_id: str, message: OutboundMessage) -> bool:
        """
        Send a message to one registered client.

        Returns:
            bool: True if the message was handed to an open channel
        """
        record = self.registry.get(connection_id)
        if record is None:
            logger.debug("Direct send to unregistered connection ignored", target_id=connection_id)
            return False
        if not record.channel.is_open():
            logger.debug("Direct send to closed channel skipped", target_id=connection_id)
            return False
        try:
            record.channel.send(message.serialize())
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning(
                "Error sending message to client",
                target_id=connection_id,
                message_type=message.type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        return True
