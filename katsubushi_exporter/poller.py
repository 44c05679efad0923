"""
Poll Loop Module

Periodically fetches stats from katsubushi and publishes them to the
gauge registry. Failures are retried after a fixed short delay forever;
there is no backoff growth and no retry limit.
"""

import asyncio
import logging
from typing import Optional

from .client.stats_client import StatsClient
from .config.settings import settings
from .metrics.gauges import GaugeRegistry
from .protocol.stats import StatsError

logger = logging.getLogger(__name__)


class StatsPoller:
    """
    Background loop: fetch -> validate -> publish -> sleep.

    On success the loop sleeps for `interval` seconds; on a fetch error or
    a reply without version/pid it sleeps for `retry_interval` seconds and
    leaves the gauges untouched. This is the only writer of the gauges.

    Usage:
        poller = StatsPoller(StatsClient('localhost', 11212), GaugeRegistry())
        task = poller.start()
    """

    def __init__(
            self,
            client: StatsClient,
            gauges: GaugeRegistry,
            interval: float = None,
            retry_interval: float = None,
    ):
        self.client = client
        self.gauges = gauges
        self.interval = interval if interval is not None else settings.METRICS_INTERVAL
        self.retry_interval = (
            retry_interval if retry_interval is not None else settings.RETRY_INTERVAL
        )

        self._task: Optional[asyncio.Task] = None
        self._successes = 0
        self._failures = 0

    async def poll_once(self) -> float:
        """
        Run a single poll cycle.

        Returns:
            Seconds to wait before the next cycle.
        """
        try:
            snapshot = await self.client.fetch_stats()
        except StatsError as exc:
            self._failures += 1
            logger.error(f"Failed to fetch stats from {self.client.target}: {exc}")
            return self.retry_interval

        if not snapshot.has_identity:
            self._failures += 1
            logger.info("Retry since info(version or pid) is empty")
            return self.retry_interval

        self.gauges.publish(snapshot)
        self._successes += 1
        return self.interval

    async def run(self) -> None:
        """Poll forever. Only returns by cancellation."""
        logger.info(
            f"Polling {self.client.target} every {self.interval}s "
            f"(retry after {self.retry_interval}s)"
        )
        while True:
            delay = await self.poll_once()
            await asyncio.sleep(delay)

    def start(self) -> asyncio.Task:
        """Start run() as a background task on the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            self._task.add_done_callback(self._on_done)
        return self._task

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        # The HTTP side keeps serving the last snapshot; only report it
        if task.cancelled():
            logger.debug("Poller stopped")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Poller stopped unexpectedly, metrics will no longer advance",
                exc_info=exc,
            )

    def get_stats(self) -> dict:
        """Return poll counters."""
        return {
            "target": self.client.target,
            "running": self._task is not None and not self._task.done(),
            "successes": self._successes,
            "failures": self._failures,
        }
