"""
Liveness sweeping for the relay.

Clients report their position continuously; a client whose last position
update is older than the stale timeout is considered gone. The sweeper runs
on a fixed period independent of message traffic, removes stale records from
the registry and hard-closes their channels.

Evicted clients are not announced with player_left. Only a client-initiated
or transport-detected close goes through the announcing close path.
"""

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...structured_logging.enhanced_logging_config import get_logger
from ..channel import CLOSE_CODE_GOING_AWAY

if TYPE_CHECKING:
    from ..client_registry import ClientRegistry

logger = get_logger(__name__)


class ConnectionSweeper:
    """
    Periodically evicts clients whose liveness timestamp has expired.

    This class provides:
    - A single sweep tick (sweep_once) usable directly or from tests
    - A background task running the tick every sweep_interval seconds
    - Eviction counters for status reporting
    """

    def __init__(
        self,
        registry: "ClientRegistry",
        sweep_interval: float = 10.0,
        stale_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the sweeper.

        Args:
            registry: Registry of live clients (shared with the router and lifecycle handlers)
            sweep_interval: Seconds between sweep ticks
            stale_timeout: Seconds since the last update after which a client is evicted
            clock: Monotonic clock; must be the same clock the router stamps last_update with
        """
        self.registry = registry
        self.sweep_interval = sweep_interval
        self.stale_timeout = stale_timeout
        self.clock = clock
        self.total_evictions = 0
        self.sweeps_performed = 0
        self._sweep_task: asyncio.Task[None] | None = None

    def sweep_once(self, now: float | None = None) -> list[str]:
        """
        Run one sweep tick.

        Args:
            now: Timestamp to judge staleness against (defaults to the clock)

        Returns:
            list[str]: Connection ids evicted by this tick
        """
        if now is None:
            now = self.clock()

        stale_records = self.registry.pop_stale(now, self.stale_timeout)
        self.sweeps_performed += 1

        for record in stale_records:
            logger.info(
                "Removing stale client",
                target_id=record.connection_id,
                callsign=record.callsign,
                idle_seconds=round(now - record.last_update, 3),
            )
            try:
                record.channel.close(CLOSE_CODE_GOING_AWAY, "Connection timed out")
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning(
                    "Error closing stale channel",
                    target_id=record.connection_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        self.total_evictions += len(stale_records)
        logger.debug(
            "Liveness sweep completed",
            evicted=len(stale_records),
            remaining=self.registry.size(),
        )
        return [record.connection_id for record in stale_records]

    async def periodic_sweep_task(self) -> None:
        """Run sweep ticks every sweep_interval seconds until cancelled."""
        logger.info(
            "Starting periodic liveness sweeps",
            interval_seconds=self.sweep_interval,
            stale_timeout_seconds=self.stale_timeout,
        )
        try:
            while True:
                await asyncio.sleep(self.sweep_interval)
                try:
                    self.sweep_once()
                except Exception as e:  # pylint: disable=broad-exception-caught
                    # A failed tick is logged and the next one still runs.
                    logger.error("Error in liveness sweep", error=str(e), exc_info=True)
        except asyncio.CancelledError:
            logger.info("Periodic liveness sweep task cancelled")
            raise

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep task. Must be called from the event loop."""
        if self.is_running:
            logger.warning("Liveness sweep task already running")
            return
        self._sweep_task = asyncio.create_task(self.periodic_sweep_task(), name="connection_sweeper/periodic_sweep")

    async def stop(self) -> None:
        """Stop the periodic sweep task and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None or task.done():
            return
        logger.info("Stopping periodic liveness sweep task")
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=5.0)
        except (TimeoutError, asyncio.CancelledError):
            pass
