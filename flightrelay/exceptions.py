"""
Exception hierarchy for the flight relay server.

Errors fall into four categories:

1. Decode errors: an inbound payload could not be parsed or validated. The
   payload is dropped and the connection stays open.
2. Stale-reference errors: an operation targeted a connection id that is no
   longer registered (lost a race with disconnect). Always a silent no-op.
3. Transport errors: the channel failed underneath us. Handled as a close.
4. Internal invariant violations, such as inserting a duplicate connection id.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """Contextual information attached to a relay error for logging."""

    connection_id: str | None = None
    message_type: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "connection_id": self.connection_id,
            "message_type": self.message_type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class FlightRelayError(Exception):
    """
    Base exception for all relay errors.

    The error is logged once, at construction, at the level named by
    ``log_level``. Handlers that catch it should not log it again; use
    log_exception_once() which honours the already-logged marker.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize relay error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.timestamp = datetime.now(UTC)
        self._already_logged = False

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log_method = getattr(logger, self.log_level, logger.error)
        log_method(
            "Relay error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )
        self._already_logged = True

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for diagnostics."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class MessageDecodeError(FlightRelayError):
    """An inbound payload was not parseable or failed validation."""

    log_level = "warning"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        error_type: str = "invalid_message",
        **kwargs,
    ):
        self.error_type = error_type
        details = kwargs.pop("details", None) or {}
        details["error_type"] = error_type
        super().__init__(message, context, details=details, **kwargs)


class StaleConnectionError(FlightRelayError):
    """An operation referenced a connection id that is no longer registered."""

    log_level = "debug"

    def __init__(self, connection_id: str, context: ErrorContext | None = None, **kwargs):
        self.connection_id = connection_id
        context = context or ErrorContext(connection_id=connection_id)
        super().__init__(f"Connection {connection_id} is not registered", context, **kwargs)


class DuplicateConnectionError(FlightRelayError):
    """A connection id was inserted twice; indicates an id generator bug."""

    def __init__(self, connection_id: str, context: ErrorContext | None = None, **kwargs):
        self.connection_id = connection_id
        context = context or ErrorContext(connection_id=connection_id)
        super().__init__(f"Connection {connection_id} is already registered", context, **kwargs)


class ConfigurationError(FlightRelayError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key
