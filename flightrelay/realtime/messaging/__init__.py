"""Outbound message delivery."""

from .message_broadcaster import MessageBroadcaster

__all__ = ["MessageBroadcaster"]
