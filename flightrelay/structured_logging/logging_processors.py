"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data and for
tagging entries with the service name.
"""

import re
from typing import Any

# Sensitive patterns that should be redacted
_SENSITIVE_PATTERNS = [
    re.compile(pattern)
    for pattern in (
        r"\bpassword\b",
        r"\btoken\b",
        r"\bsecret\b",
        r"_key\b",
        r"^key$",
        r"\bcredential\b",
        r"\bauth\b",
        r"\bauthorization\b",
    )
]

# Field names that match a pattern above but never carry secrets
_SAFE_FIELDS = {"cache_key", "message_key"}


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        """Recursively sanitize dictionary values."""
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
                continue
            key_lower = str(key).lower()
            if key_lower in _SAFE_FIELDS:
                sanitized[key] = value
            elif any(pattern.search(key_lower) for pattern in _SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_service_name(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", "flightrelay")
    return event_dict
