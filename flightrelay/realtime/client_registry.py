"""
Client registry for the relay.

The registry is the single shared mutable resource of the relay: the message
router, the connection lifecycle handlers and the liveness sweeper all read and
mutate it. One lock guards the underlying dict and every compound
read-then-write (join, touch, pop_stale) runs entirely under it. No I/O ever
happens while the lock is held; callers take a snapshot and send afterwards.
"""

import threading
from collections.abc import Iterator
from typing import Any

from ..exceptions import DuplicateConnectionError, StaleConnectionError
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import ClientRecord

logger = get_logger(__name__)


class ClientRegistry:
    """
    Concurrency-safe mapping from connection id to ClientRecord.

    Safe to use from the event loop and from worker threads alike.
    """

    def __init__(self) -> None:
        self._clients: dict[str, ClientRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: ClientRecord) -> int:
        """
        Register a new connection.

        Args:
            record: The record to add, keyed by its connection_id

        Returns:
            int: Registry size after the insertion

        Raises:
            DuplicateConnectionError: If the connection id is already registered
        """
        with self._lock:
            if record.connection_id in self._clients:
                raise DuplicateConnectionError(record.connection_id)
            self._clients[record.connection_id] = record
            return len(self._clients)

    def get(self, connection_id: str) -> ClientRecord | None:
        """Look up a record; None if the connection is not registered."""
        with self._lock:
            return self._clients.get(connection_id)

    def remove(self, connection_id: str) -> ClientRecord | None:
        """
        Remove a record if present.

        Removing an id that is not registered is a no-op.

        Returns:
            The removed record, or None if nothing was registered under the id
        """
        with self._lock:
            return self._clients.pop(connection_id, None)

    def snapshot(self) -> list[tuple[str, ClientRecord]]:
        """
        Return a point-in-time view of the registry.

        The returned list is detached from the registry, so it can be iterated
        (and sent to) while other operations mutate the registry. Order is
        unspecified.
        """
        with self._lock:
            return list(self._clients.items())

    def size(self) -> int:
        """Current live-client count."""
        with self._lock:
            return len(self._clients)

    def joined_count(self) -> int:
        """Number of live clients that have sent a join message."""
        with self._lock:
            return sum(1 for record in self._clients.values() if record.has_joined)

    def join(self, connection_id: str, callsign: str, aircraft: str) -> tuple[ClientRecord, list[dict[str, Any]]]:
        """
        Set a client's identity and list every other joined client.

        Both happen under one lock acquisition, so the list reflects the
        registry exactly as it was when this join took effect and never
        contains the joining client itself.

        Returns:
            Tuple of the updated record and the player_list entries of the others

        Raises:
            StaleConnectionError: If the connection is no longer registered
        """
        with self._lock:
            record = self._clients.get(connection_id)
            if record is None:
                raise StaleConnectionError(connection_id)
            record.callsign = callsign
            record.aircraft = aircraft
            others = [
                other.to_player_entry()
                for other_id, other in self._clients.items()
                if other_id != connection_id and other.has_joined
            ]
            return record, others

    def touch(self, connection_id: str, now: float) -> ClientRecord:
        """
        Refresh a client's liveness timestamp.

        Raises:
            StaleConnectionError: If the connection is no longer registered
        """
        with self._lock:
            record = self._clients.get(connection_id)
            if record is None:
                raise StaleConnectionError(connection_id)
            record.last_update = now
            return record

    def pop_stale(self, now: float, timeout: float) -> list[ClientRecord]:
        """
        Remove and return every record idle for longer than timeout.

        A record is stale when now - last_update > timeout (strictly greater).
        """
        with self._lock:
            stale_ids = [cid for cid, record in self._clients.items() if now - record.last_update > timeout]
            return [self._clients.pop(cid) for cid in stale_ids]

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._clients

    def __iter__(self) -> Iterator[tuple[str, ClientRecord]]:
        return iter(self.snapshot())
