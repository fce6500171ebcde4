"""
FastAPI application factory for the flight relay server.

This module handles FastAPI app creation and router registration.
"""

from fastapi import FastAPI

from .. import __version__
from ..api.real_time import realtime_router
from ..api.status import status_router
from ..config import AppConfig, get_config
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (loaded via get_config() when omitted)

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    app = FastAPI(
        title="Flight Relay",
        description="Real-time relay of joins, positions and chat between flight-sim clients",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config or get_config()

    # The status route and the relay WebSocket share "/"; they differ by scope type.
    app.include_router(status_router)
    app.include_router(realtime_router)

    logger.debug("Application created", port=app.state.config.server.port)
    return app
