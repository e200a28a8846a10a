"""
Batch scheduler loop.

The scheduler runs one cooperative loop per processor:

1. If stop has been requested, leave the loop.
2. Run one consumption step.
3. Wait ``interval`` seconds (cut short when stop is requested).
4. Repeat.

The next cycle starts only after the current one, including the handler
await, has finished, so two drains never overlap. Cycle timing drifts by
the handler's latency. Stop is cooperative: it is observed at the top of a
cycle or during the wait, and never interrupts a running step.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

StepFunc = Callable[[], Awaitable[Any]]


class BatchScheduler:
    """
    Timer-driven loop calling a step function with a fixed pause in between.

    Example:
        >>> scheduler = BatchScheduler(consumer.consume_batch, interval=1.0, name="exports")
        >>> scheduler.start()
        >>> ...
        >>> scheduler.request_stop()
        >>> await scheduler.wait_stopped()
        True
    """

    def __init__(
        self,
        step: StepFunc,
        interval: float,
        *,
        name: str = "batch-scheduler",
        on_stop: StepFunc | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            step: Async function run once per cycle
            interval: Seconds to wait between cycles
            name: Name used for the loop task and in logs
            on_stop: Async function run once after stop is observed,
                before the loop reports completion
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self._step = step
        self._interval = interval
        self._name = name
        self._on_stop = on_stop
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._cycles = 0

    def start(self) -> None:
        """
        Start the loop as a task on the running event loop.

        Returns immediately; the first cycle runs at the loop's next
        scheduling opportunity. Calling start() again is a no-op.

        Raises:
            RuntimeError: If called without a running event loop
        """
        if self._task is not None:
            return

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"eventbatch-{self._name}")
        logger.debug(
            f"Scheduler {self._name} started",
            extra={"scheduler": self._name, "interval": self._interval},
        )

    def request_stop(self) -> None:
        """Ask the loop to finish after its current cycle."""
        self._stop_requested.set()

    async def wait_stopped(self, timeout: float | None = None) -> bool:
        """
        Wait until the loop has finished.

        The loop is never cancelled by this method; on timeout it keeps
        running until it observes the stop request.

        Args:
            timeout: Max seconds to wait (None = no limit)

        Returns:
            True if the loop finished (or never started), False on timeout
        """
        if self._task is None:
            return True

        done, _ = await asyncio.wait({self._task}, timeout=timeout)
        return self._task in done

    async def _run(self) -> None:
        """The scheduler loop body."""
        try:
            while not self._stop_requested.is_set():
                self._cycles += 1
                await self._run_step(self._step)
                await self._pause()

            if self._on_stop is not None:
                await self._run_step(self._on_stop)
        finally:
            logger.debug(f"Scheduler {self._name} finished", extra={"scheduler": self._name})

    async def _pause(self) -> None:
        """Sleep for one interval, returning early if stop is requested."""
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=self._interval)
        except TimeoutError:
            pass

    async def _run_step(self, step: StepFunc) -> None:
        """Run one step; unexpected errors are logged and the loop continues."""
        try:
            await step()
        except Exception as e:
            logger.error(
                f"Unexpected error in scheduler {self._name} cycle: {e}",
                exc_info=True,
                extra={"scheduler": self._name, "error": str(e)},
            )

    @property
    def task(self) -> asyncio.Task[None] | None:
        """The loop task, once started."""
        return self._task

    @property
    def started(self) -> bool:
        """Whether start() has created the loop task."""
        return self._task is not None

    @property
    def is_running(self) -> bool:
        """Whether the loop task exists and has not finished."""
        return self._task is not None and not self._task.done()

    @property
    def stop_requested(self) -> bool:
        """Whether stop has been requested."""
        return self._stop_requested.is_set()

    @property
    def interval(self) -> float:
        """Seconds between cycles."""
        return self._interval

    @property
    def cycles(self) -> int:
        """Cycles started by the loop."""
        return self._cycles


__all__ = ["BatchScheduler", "StepFunc"]
