"""
Status endpoints for the flight relay server.

These are read-only: they report on the connection registry and never
mutate it.
"""

import os
import time
from typing import Any

import psutil
from fastapi import APIRouter, Request

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

status_router = APIRouter(tags=["status"])


def get_process_uptime() -> float:
    """Seconds since this process started."""
    return max(0.0, time.time() - psutil.Process(os.getpid()).create_time())


@status_router.get("/")
async def server_status(request: Request) -> dict[str, Any]:
    """Report that the relay is running, with its client count and uptime."""
    connection_manager = getattr(request.app.state, "connection_manager", None)
    connected_clients = connection_manager.registry.size() if connection_manager is not None else 0
    return {
        "status": "running",
        "connectedClients": connected_clients,
        "uptime": get_process_uptime(),
    }


@status_router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@status_router.get("/stats")
async def relay_stats(request: Request) -> dict[str, Any]:
    """Detailed relay counters."""
    connection_manager = getattr(request.app.state, "connection_manager", None)
    if connection_manager is None:
        return {"connected_clients": 0, "joined_clients": 0, "total_connections": 0, "total_evictions": 0}
    return connection_manager.get_stats()
