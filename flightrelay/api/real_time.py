"""
Real-time communication API endpoints for the flight relay server.

The relay WebSocket is served on the root path (next to the status route) and
on /ws.
"""

from fastapi import APIRouter, WebSocket

from ..realtime.connection_manager import ConnectionManager
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])

# Try Again Later
CLOSE_CODE_UNAVAILABLE = 1013


def _resolve_connection_manager(websocket: WebSocket) -> ConnectionManager | None:
    websocket_app = getattr(websocket, "app", None)
    state = getattr(websocket_app, "state", None)
    return getattr(state, "connection_manager", None)


@realtime_router.websocket("/")
@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint relaying joins, positions and chat between clients."""
    connection_manager = _resolve_connection_manager(websocket)
    if connection_manager is None:
        logger.error("Connection manager unavailable, rejecting WebSocket")
        await websocket.accept()
        await websocket.close(code=CLOSE_CODE_UNAVAILABLE, reason="Service temporarily unavailable")
        return

    await handle_websocket_connection(websocket, connection_manager)
