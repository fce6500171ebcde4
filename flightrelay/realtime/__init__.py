"""
Real-time relay core: client registry, message routing, broadcasting and
liveness sweeping.
"""

from .client_registry import ClientRegistry
from .connection_manager import ConnectionManager
from .connection_models import ClientRecord
from .message_router import MessageRouter, RouteResult

__all__ = ["ClientRecord", "ClientRegistry", "ConnectionManager", "MessageRouter", "RouteResult"]
