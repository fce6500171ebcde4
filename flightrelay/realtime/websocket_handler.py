"""
WebSocket handler for the flight relay.

Accepts the socket, wraps it in a WebSocketChannel, registers it with the
connection manager and feeds every received frame to the router until the
connection ends. However the loop ends, the connection goes through the
manager's close path exactly once.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..exceptions import DuplicateConnectionError
from ..structured_logging.enhanced_logging_config import (
    bind_connection_context,
    clear_connection_context,
    get_logger,
)
from .channel import WebSocketChannel
from .connection_manager import ConnectionManager

logger = get_logger(__name__)


async def _handle_websocket_message_loop(
    websocket: WebSocket, connection_id: str, connection_manager: ConnectionManager
) -> None:
    """Receive frames until the client disconnects."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            logger.info("WebSocket disconnected", close_code=message.get("code"))
            return

        data = message.get("text")
        if data is None:
            data = message.get("bytes")
        if data is None:
            continue

        connection_manager.handle_message(connection_id, data)


async def handle_websocket_connection(websocket: WebSocket, connection_manager: ConnectionManager) -> None:
    """
    Handle one client WebSocket for its whole lifetime.

    Args:
        websocket: The WebSocket connection (not yet accepted)
        connection_manager: ConnectionManager owning the client registry
    """
    await websocket.accept()

    channel = WebSocketChannel(websocket, max_queue_size=connection_manager.config.send_queue_size)
    channel.start()
    try:
        connection_id = connection_manager.accept(channel)
    except DuplicateConnectionError:
        # accept() already closed the channel; stop its writer before giving up the socket.
        await channel.aclose()
        return

    bind_connection_context(connection_id)

    try:
        await _handle_websocket_message_loop(websocket, connection_id, connection_manager)
    except WebSocketDisconnect as e:
        logger.info("WebSocket disconnected", close_code=e.code)
    except Exception as e:  # pylint: disable=broad-exception-caught
        connection_manager.handle_transport_error(connection_id, e)
    finally:
        connection_manager.handle_close(connection_id)
        await channel.aclose()
        clear_connection_context()
