"""Fixed-delay scheduler for source cycles."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

CycleFn = Callable[[], Awaitable[object]]


class JobScheduler:
    """Runs each job immediately, then again *interval* seconds after it finishes.

    A job never overlaps itself. Exceptions escaping a cycle are logged and
    the loop carries on; the scheduler never inspects them.
    """

    def __init__(self, *, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def job_names(self) -> list[str]:
        return list(self._tasks)

    def schedule(self, name: str, cycle_fn: CycleFn, interval: float) -> None:
        """Start the loop of *name*.

        Raises
        ------
        ValueError
            If *name* is already scheduled or *interval* is not positive.
        """
        if name in self._tasks:
            raise ValueError(f"Job {name!r} is already scheduled")
        if interval <= 0:
            raise ValueError(f"Job {name!r} interval must be positive, got {interval}")
        self._tasks[name] = asyncio.create_task(self._run(name, cycle_fn, interval), name=f"job:{name}")
        _logger.info("Scheduled %s every %.0fs", name, interval)

    async def _run(self, name: str, cycle_fn: CycleFn, interval: float) -> None:
        try:
            while True:
                try:
                    await cycle_fn()
                except Exception:
                    _logger.exception("Job %s cycle raised", name)
                _logger.debug("Job %s sleeping %.0fs", name, interval)
                await self._sleep(interval)
        except asyncio.CancelledError:
            _logger.debug("Job %s loop cancelled", name)
            raise

    async def wait(self) -> None:
        """Block until every loop has ended (normally only via :meth:`stop`)."""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel every loop and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            _logger.info("Stopped %d job(s)", len(tasks))
