"""
Structured logging package for the flight relay server.

All imports should use explicit paths like
'from flightrelay.structured_logging.enhanced_logging_config import get_logger'.
"""

__all__ = []
