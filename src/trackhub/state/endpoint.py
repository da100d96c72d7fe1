"""ERP endpoint selection (primary / contingency failover)."""

from __future__ import annotations

import logging

_logger = logging.getLogger(__name__)


class ErpEndpointState:
    """Tracks which ERP base URL is active.

    Parameters
    ----------
    primary_url : str
        Primary ERP base URL.
    contingency_url : str or None
        Secondary URL. Without one, failures are counted but the active URL
        never changes.
    threshold : int
        Consecutive transport failures on the primary before switching.
    """

    def __init__(self, primary_url: str, contingency_url: str | None = None, *, threshold: int = 2) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        self.primary_url = primary_url
        self.contingency_url = contingency_url
        self.threshold = threshold
        self.active_url = primary_url
        self.consecutive_failures_on_primary = 0

    @property
    def on_primary(self) -> bool:
        return self.active_url == self.primary_url

    def on_transport_failure(self) -> None:
        """Count a transport failure against the active URL."""
        if not self.on_primary:
            _logger.warning("Contingency ERP %s failed, switching back to primary %s", self.active_url, self.primary_url)
            self.active_url = self.primary_url
            self.consecutive_failures_on_primary = 0
            return

        self.consecutive_failures_on_primary += 1
        if self.contingency_url is None:
            _logger.warning(
                "Primary ERP %s failed (%d in a row); no contingency URL configured",
                self.primary_url,
                self.consecutive_failures_on_primary,
            )
            return

        if self.consecutive_failures_on_primary >= self.threshold:
            _logger.warning(
                "Primary ERP %s failed %d times in a row, switching to contingency %s",
                self.primary_url,
                self.consecutive_failures_on_primary,
                self.contingency_url,
            )
            self.active_url = self.contingency_url
            self.consecutive_failures_on_primary = 0
        else:
            _logger.info(
                "Primary ERP %s failed (%d/%d before failover)",
                self.primary_url,
                self.consecutive_failures_on_primary,
                self.threshold,
            )

    def on_success(self) -> None:
        """A commit succeeded against the active URL."""
        if self.on_primary:
            self.consecutive_failures_on_primary = 0

    def on_login(self, url: str) -> None:
        """An ERP login succeeded against *url*.

        A successful login on the primary while on contingency means the
        primary is back: switch to it. While already on the primary the
        failure count is left alone; only a committed batch resets it.
        """
        if url != self.primary_url or self.on_primary:
            return
        _logger.info("Primary ERP %s reachable again, leaving contingency", self.primary_url)
        self.active_url = self.primary_url
        self.consecutive_failures_on_primary = 0
