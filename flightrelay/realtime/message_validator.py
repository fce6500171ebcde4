"""
Inbound message decoding and validation.

Raw frames from a client are decoded exactly once here into one of the
inbound envelope types. Every failure is reported as a MessageDecodeError so
that the caller can drop the frame without touching the connection.
"""

import json
from typing import Any

from pydantic import ValidationError

from ..exceptions import ErrorContext, MessageDecodeError
from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import KNOWN_INBOUND_TYPES, InboundMessage, UnknownMessage, known_inbound_adapter

logger = get_logger(__name__)


def _reject_non_standard_constant(constant: str) -> Any:
    """Refuse the NaN, Infinity and -Infinity literals json accepts by default."""
    raise ValueError(f"Non-standard JSON constant {constant}")


def _nesting_depth(value: Any) -> int:
    """Depth of nested arrays and objects in a decoded JSON value (scalars are 0)."""
    depth = 0
    stack = [(value, 1)]
    while stack:
        current, level = stack.pop()
        if isinstance(current, dict):
            children = current.values()
        elif isinstance(current, list):
            children = current
        else:
            continue
        depth = max(depth, level)
        stack.extend((child, level + 1) for child in children)
    return depth


class InboundMessageValidator:
    """
    Decodes raw client frames into typed inbound messages.

    Implements:
    - Message size limit
    - UTF-8 and JSON decoding
    - Top-level shape check (an object with a string ``type``)
    - Nesting depth limit
    - Schema validation of the known message kinds
    """

    MAX_MESSAGE_SIZE = 64 * 1024
    MAX_NESTING_DEPTH = 32

    def __init__(self, max_message_size: int | None = None):
        """
        Initialize the validator.

        Args:
            max_message_size: Maximum frame size in bytes (default: 64KB)
        """
        self.max_message_size = max_message_size or self.MAX_MESSAGE_SIZE

    def parse_and_validate(self, data: str | bytes, connection_id: str | None = None) -> InboundMessage:
        """
        Decode a raw frame.

        Args:
            data: Text or binary frame as received from the channel
            connection_id: Sender, used for error context only

        Returns:
            A JoinMessage, PositionMessage or ChatMessage, or UnknownMessage
            for a well-formed message of a kind the relay does not handle

        Raises:
            MessageDecodeError: If the frame cannot be decoded or fails validation
        """
        context = ErrorContext(connection_id=connection_id)

        raw = data.encode("utf-8") if isinstance(data, str) else data
        if len(raw) > self.max_message_size:
            raise MessageDecodeError(
                f"Message size {len(raw)} bytes exceeds maximum {self.max_message_size} bytes",
                context,
                error_type="size_limit_exceeded",
            )

        try:
            payload: Any = json.loads(raw, parse_constant=_reject_non_standard_constant)
        except (ValueError, RecursionError) as e:
            # ValueError also covers UnicodeDecodeError and NaN/Infinity literals.
            raise MessageDecodeError(f"Invalid JSON: {e}", context, error_type="invalid_json") from e

        depth = _nesting_depth(payload)
        if depth > self.MAX_NESTING_DEPTH:
            raise MessageDecodeError(
                f"Message nesting depth {depth} exceeds maximum {self.MAX_NESTING_DEPTH}",
                context,
                error_type="nesting_too_deep",
            )

        if not isinstance(payload, dict):
            raise MessageDecodeError(
                f"Message must be a JSON object, got {type(payload).__name__}", context, error_type="not_an_object"
            )

        message_type = payload.get("type")
        if not isinstance(message_type, str):
            raise MessageDecodeError("Message has no string 'type' field", context, error_type="missing_type")

        context.message_type = message_type
        if message_type not in KNOWN_INBOUND_TYPES:
            return UnknownMessage(type=message_type)

        try:
            return known_inbound_adapter.validate_python(payload)
        except ValidationError as e:
            raise MessageDecodeError(
                f"Invalid {message_type} message",
                context,
                error_type="invalid_fields",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e


def get_message_validator(max_message_size: int | None = None) -> InboundMessageValidator:
    """Create a validator with the given size limit."""
    return InboundMessageValidator(max_message_size=max_message_size)
