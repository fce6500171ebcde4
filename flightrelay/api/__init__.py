"""
API module for the flight relay server.

Provides the WebSocket relay endpoint and the HTTP status endpoints.
"""

from .real_time import realtime_router
from .status import status_router

__all__ = ["realtime_router", "status_router"]
