"""Application lifecycle management for the flight relay server."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..realtime.connection_manager import ConnectionManager
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger("flightrelay.lifespan")

__all__ = ["lifespan"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    On startup a ConnectionManager is created from the relay configuration,
    published on app.state.connection_manager, and its liveness sweeper is
    started. On shutdown the sweeper is stopped and every remaining channel
    is hard-closed.
    """
    config = getattr(app.state, "config", None) or get_config()
    logger.info("Starting flight relay server", port=config.server.port)

    connection_manager = ConnectionManager(config.relay)
    app.state.connection_manager = connection_manager
    connection_manager.start()
    logger.info(
        "Flight relay server started",
        sweep_interval=config.relay.sweep_interval,
        stale_timeout=config.relay.stale_timeout,
    )

    try:
        yield
    finally:
        logger.info("Shutting down flight relay server...")
        try:
            await connection_manager.shutdown()
        except (RuntimeError, ValueError) as e:
            logger.error("Critical shutdown failure", error=str(e), error_type=type(e).__name__, exc_info=True)
        app.state.connection_manager = None
        logger.info("Flight relay server shutdown complete")
