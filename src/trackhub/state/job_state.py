"""Pending-batch cache and endpoint bookkeeping for one source."""

from __future__ import annotations

import logging

from trackhub.exceptions import BatchPendingError
from trackhub.models.position import PendingBatch
from trackhub.state.endpoint import ErpEndpointState

_logger = logging.getLogger(__name__)


class JobState:
    """State owned by a single source's cycle.

    The pending batch survives ERP failures so the next cycle can retry
    the commit without fetching again.
    """

    def __init__(self, source: str, endpoint: ErpEndpointState) -> None:
        self.source = source
        self.endpoint = endpoint
        self._pending: PendingBatch | None = None

    @property
    def active_erp_url(self) -> str:
        return self.endpoint.active_url

    def get_cache(self) -> PendingBatch | None:
        return self._pending

    def set_cache(self, batch: PendingBatch) -> None:
        """Store a freshly fetched batch.

        Raises
        ------
        BatchPendingError
            If another batch is still awaiting commit.
        """
        if self._pending is not None:
            raise BatchPendingError(
                f"{self.source} already has {len(self._pending.positions)} positions awaiting commit"
            )
        self._pending = batch
        _logger.debug("%s cached %d positions", self.source, len(batch.positions))

    def clear_cache(self) -> None:
        if self._pending is not None:
            _logger.debug("%s dropping %d cached positions", self.source, len(self._pending.positions))
        self._pending = None

    def on_erp_transport_failure(self) -> None:
        self.endpoint.on_transport_failure()

    def on_erp_success(self) -> None:
        self.endpoint.on_success()
