"""Process-wide gate around ERP access."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from trackhub.exceptions import ErpAccessReentryError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErpAccessSerializer:
    """Runs ERP work one caller at a time, in arrival order.

    Waiters on an :class:`asyncio.Lock` are woken first-in first-out. The
    gate is not reentrant: asking for it again from the task that holds it
    raises :class:`ErpAccessReentryError`.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task[object] | None = None
        self._owner_label: str | None = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def run(self, label: str, work: Callable[[], Awaitable[T]]) -> T:
        """Wait for the gate, run *work*, release the gate.

        Exceptions from *work* propagate to the caller after the gate is
        released.
        """
        current = asyncio.current_task()
        if current is not None and current is self._owner:
            raise ErpAccessReentryError(f"{label} requested ERP access while already holding it as {self._owner_label}")

        if self._lock.locked():
            _logger.debug("%s waiting for ERP access (held by %s)", label, self._owner_label)
        async with self._lock:
            self._owner = current
            self._owner_label = label
            _logger.debug("%s acquired ERP access", label)
            try:
                return await work()
            finally:
                self._owner = None
                self._owner_label = None
                _logger.debug("%s released ERP access", label)
