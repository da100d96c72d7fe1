"""Job status reporting."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from pydantic import BaseModel, ConfigDict

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JobStatus(enum.StrEnum):
    RUNNING = "running"
    IDLE = "idle"
    ERROR = "error"


class StatusReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    status: JobStatus
    message: str
    reported_at: datetime


class StatusSink(Protocol):
    def report(self, source: str, status: JobStatus, message: str) -> None:
        ...


StatusListener = Callable[[StatusReport], None]


class StatusBoard:
    """Keeps the latest status of every source and fans it out to listeners.

    Listener failures are logged and ignored.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._latest: dict[str, StatusReport] = {}
        self._listeners: list[StatusListener] = []

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def report(self, source: str, status: JobStatus, message: str) -> None:
        entry = StatusReport(source=source, status=status, message=message, reported_at=self._clock())
        self._latest[source] = entry
        _logger.debug("[%s] status=%s %s", source, status.value, message)
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                _logger.debug("Status listener failed", exc_info=True)

    def get(self, source: str) -> StatusReport | None:
        return self._latest.get(source)

    def snapshot(self) -> dict[str, StatusReport]:
        return dict(self._latest)
