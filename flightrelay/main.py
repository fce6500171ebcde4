"""
Flight relay server - main application entry point.

Importing this module sets up logging from the environment configuration and
builds the ASGI application served by uvicorn.
"""

from .app.factory import create_app
from .config import get_config
from .structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

# Logging is set up before any logger is used so startup output is captured.
config = get_config()
setup_enhanced_logging(config.to_legacy_dict())

logger = get_logger(__name__)
logger.info("Logging setup completed", environment=config.logging.environment)

app = create_app(config)
