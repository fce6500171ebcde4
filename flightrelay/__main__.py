"""
Flight relay server startup script.

Usage:
    python -m flightrelay

Host and port come from the configuration (SERVER_HOST, SERVER_PORT or PORT).
"""

import uvicorn

from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging


def main() -> None:
    """Start the flight relay server with uvicorn."""
    config = get_config()
    setup_enhanced_logging(config.to_legacy_dict())
    logger = get_logger("flightrelay.startup")

    logger.info(f"Flight relay server running on port {config.server.port}", host=config.server.host)
    uvicorn.run(
        "flightrelay.main:app",
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
