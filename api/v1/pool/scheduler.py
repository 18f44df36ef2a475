import asyncio
import logging

from .models import MaintenanceResult
from .service import PoolMaintenanceController

logger = logging.getLogger(__name__)


class PoolMaintenanceScheduler:
    """
    Periodically triggers pool maintenance, then a buffer refill, without
    awaiting the runs.
    """

    def __init__(self, controller: PoolMaintenanceController, interval_seconds: float = 60.0):
        self._controller = controller
        self._interval = interval_seconds
        self._loop_task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self, interval_seconds: float | None = None) -> asyncio.Task:
        """
        Start the periodic loop. The first tick fires immediately.

        Calling start() while the loop is running returns the existing task.
        Must be called from a running event loop.
        """
        if self.is_running:
            logger.debug("Pool maintenance scheduler already running")
            return self._loop_task

        if interval_seconds is not None:
            self._interval = interval_seconds
        if self._interval <= 0:
            raise ValueError("interval_seconds must be positive")

        self._loop_task = asyncio.create_task(self._run(), name="pool-maintenance-scheduler")
        logger.info(f"Pool maintenance scheduler started (interval {self._interval}s)")
        return self._loop_task

    async def stop(self) -> None:
        """Cancel the loop and any in-flight maintenance runs it launched."""
        if self._loop_task is None:
            return

        logger.info("Stopping pool maintenance scheduler...")
        tasks = [self._loop_task, *self._ticks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._loop_task = None
        self._ticks.clear()
        logger.info("Pool maintenance scheduler stopped.")

    async def _run(self) -> None:
        while True:
            self._tick()
            await asyncio.sleep(self._interval)

    def _tick(self) -> None:
        task = asyncio.create_task(self._maintain())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def _maintain(self) -> None:
        result = await self._trigger("pool maintenance", self._controller.maintain_pool)
        if result is not None:
            await self._trigger("buffer refill", self._controller.ensure_buffer_filled)

    async def _trigger(self, name: str, run) -> MaintenanceResult | None:
        try:
            result = await run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Scheduled {name} failed: {e}")
            return None

        if result.skipped:
            logger.debug(f"Scheduled {name} skipped: {result.reason}")
        else:
            logger.debug(
                f"Scheduled {name} finished: {result.outcome.value}",
                extra={"generated": result.generated, "failed": result.failed},
            )
        return result
