"""
Duplex channel abstraction used by the relay core.

The core never touches a socket directly. It sends pre-serialized text frames,
checks readiness, and hard-closes through the Channel protocol. WebSocketChannel
adapts a FastAPI WebSocket to that protocol.
"""

import asyncio
import contextlib
from typing import Protocol, runtime_checkable

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Going Away: used when the server drops a connection
CLOSE_CODE_GOING_AWAY = 1001


@runtime_checkable
class Channel(Protocol):
    """Send side of one client connection, exclusively owned by its ClientRecord."""

    def send(self, data: str) -> None:
        """Queue a serialized message for delivery. Must not block."""

    def close(self, code: int = CLOSE_CODE_GOING_AWAY, reason: str = "") -> None:
        """Close the connection immediately, discarding undelivered messages."""

    def is_open(self) -> bool:
        """Whether the channel currently accepts sends."""


class WebSocketChannel:
    """
    Channel backed by a FastAPI WebSocket.

    Sends are fire-and-forget: send() enqueues onto a bounded per-channel queue
    and a single writer task drains it, so messages reach this client in the
    order they were sent and a slow client never stalls a broadcast to others.
    When the queue is full the new message is dropped for this client only.
    """

    def __init__(self, websocket: WebSocket, max_queue_size: int = 256):
        self.websocket = websocket
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)
        self._writer_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._closed = False
        self._failed = False
        self.dropped_messages = 0

    def start(self) -> None:
        """Start the writer task. Must be called from the event loop."""
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._writer_loop(), name="websocket-channel-writer")

    async def _writer_loop(self) -> None:
        while True:
            data = await self._queue.get()
            try:
                await self.websocket.send_text(data)
            except asyncio.CancelledError:
                raise
            except Exception as e:  # pylint: disable=broad-exception-caught
                # The receive loop sees the disconnect and runs the close path.
                self._failed = True
                logger.warning("WebSocket send failed", error=str(e), error_type=type(e).__name__)
                return

    def send(self, data: str) -> None:
        if not self.is_open():
            return
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            self.dropped_messages += 1
            logger.warning(
                "Outbound queue full, dropping message",
                queue_size=self._queue.maxsize,
                dropped_messages=self.dropped_messages,
            )

    def is_open(self) -> bool:
        if self._closed or self._failed:
            return False
        return (
            getattr(self.websocket, "client_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED
            and getattr(self.websocket, "application_state", WebSocketState.CONNECTED) == WebSocketState.CONNECTED
        )

    @property
    def pending(self) -> int:
        """Number of messages queued but not yet written."""
        return self._queue.qsize()

    def close(self, code: int = CLOSE_CODE_GOING_AWAY, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._close_task = asyncio.get_running_loop().create_task(
            self._close_socket(code, reason), name="websocket-channel-close"
        )

    async def _close_socket(self, code: int, reason: str) -> None:
        await self._stop_writer()
        if getattr(self.websocket, "application_state", None) == WebSocketState.DISCONNECTED:
            return
        try:
            await asyncio.wait_for(self.websocket.close(code=code, reason=reason), timeout=2.0)
        except (RuntimeError, OSError, TimeoutError) as e:
            logger.debug("WebSocket already closed", error=str(e))

    async def _stop_writer(self) -> None:
        if self._writer_task is None or self._writer_task is asyncio.current_task():
            return
        self._writer_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._writer_task

    async def aclose(self) -> None:
        """
        Release the channel once its connection has ended.

        Stops the writer and waits for any close scheduled by close().
        """
        self._closed = True
        await self._stop_writer()
        if self._close_task is not None:
            await self._close_task
