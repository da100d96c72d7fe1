"""One extract → load cycle for a single source.

The cycle is the only place errors are classified. Each failure kind maps
to a fixed recovery:

================  ===========  =============  ===========  ==============
kind              credentials  pending batch  ERP session  endpoint state
================  ===========  =============  ===========  ==============
SOURCE_AUTH       cleared      cleared        -            -
SOURCE_TRANSPORT  cleared      cleared        -            -
SOURCE_TIMEOUT    kept         cleared        -            -
ERP_AUTH          -            kept           cleared      -
ERP_TRANSPORT     -            kept           cleared      failure counted
UNEXPECTED        extract: credentials and batch cleared;
                  load: batch and ERP session cleared
================  ===========  =============  ===========  ==============
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import assert_never

from trackhub.erp.client import ErpGateway
from trackhub.erp.lock import ErpAccessSerializer
from trackhub.erp.reconcile import ReconciliationEngine
from trackhub.exceptions import (
    ErpAuthError,
    ErpTransportError,
    SourceAuthError,
    SourceTransportError,
)
from trackhub.ingestion.base import ProviderAdapter
from trackhub.models.erp import ReconcileResult
from trackhub.models.position import PendingBatch
from trackhub.monitoring import JobStatus, StatusSink
from trackhub.session import CredentialManager
from trackhub.state.job_state import JobState

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CyclePhase(enum.StrEnum):
    EXTRACT = "extract"
    LOAD = "load"


class ErrorKind(enum.StrEnum):
    SOURCE_AUTH = "source_auth"
    SOURCE_TRANSPORT = "source_transport"
    SOURCE_TIMEOUT = "source_timeout"
    ERP_AUTH = "erp_auth"
    ERP_TRANSPORT = "erp_transport"
    UNEXPECTED = "unexpected"


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised inside a cycle to its recovery kind.

    Rate limits count as transport failures. Timeouts keep the credentials
    since they say nothing about the token.
    """
    if isinstance(exc, SourceAuthError):
        return ErrorKind.SOURCE_AUTH
    if isinstance(exc, SourceTransportError):
        return ErrorKind.SOURCE_TIMEOUT if exc.timed_out else ErrorKind.SOURCE_TRANSPORT
    if isinstance(exc, ErpAuthError):
        return ErrorKind.ERP_AUTH
    if isinstance(exc, ErpTransportError):
        return ErrorKind.ERP_TRANSPORT
    return ErrorKind.UNEXPECTED


class SourceJob:
    """Runs the cycle of one source against its own state.

    Parameters
    ----------
    adapter : ProviderAdapter
        Fetches and maps the provider's positions.
    state : JobState
        Pending batch and ERP endpoint selection of this source.
    credentials : CredentialManager or None
        Required when the adapter needs a login.
    engine : ReconciliationEngine
        Writes new positions to the ERP.
    serializer : ErpAccessSerializer
        Process-wide ERP gate shared by every job.
    erp : ErpGateway
        Used to drop the ERP session after ERP failures.
    fabricante_id : str
        ERP manufacturer key of this provider's tags.
    status_sink : StatusSink or None
        Receives progress milestones.
    retry_delay : float
        Seconds to wait after a failed cycle.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        state: JobState,
        *,
        credentials: CredentialManager | None,
        engine: ReconciliationEngine,
        serializer: ErpAccessSerializer,
        erp: ErpGateway,
        fabricante_id: str,
        status_sink: StatusSink | None = None,
        retry_delay: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if adapter.requires_login and credentials is None:
            raise ValueError(f"{adapter.name} requires a credential manager")
        self.adapter = adapter
        self.state = state
        self.credentials = credentials
        self._engine = engine
        self._serializer = serializer
        self._erp = erp
        self._fabricante_id = fabricante_id
        self._status_sink = status_sink
        self._retry_delay = retry_delay
        self._clock = clock
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self.adapter.name

    async def run_cycle(self) -> ReconcileResult | None:
        """Run one cycle. Never raises for pipeline failures.

        Returns the reconciliation result, or ``None`` when there was
        nothing to commit or the cycle failed.
        """
        phase = CyclePhase.EXTRACT
        erp_url = self.state.active_erp_url
        try:
            batch = self.state.get_cache()
            if batch is None:
                batch = await self.extract()
                if batch is None:
                    self._report(JobStatus.IDLE, "No positions received")
                    _logger.info("[%s] No positions received, nothing to do", self.name)
                    return None
                self.state.set_cache(batch)
                self._report(JobStatus.RUNNING, f"{len(batch.positions)} positions cached")
            else:
                _logger.info("[%s] Retrying %d cached positions", self.name, len(batch.positions))
                self._report(JobStatus.RUNNING, f"Reusing {len(batch.positions)} cached positions")

            phase = CyclePhase.LOAD
            self._report(JobStatus.RUNNING, f"Processing {len(batch.positions)} positions in the ERP")

            async def load() -> ReconcileResult:
                # Another job's login may have moved the endpoint while queued.
                nonlocal erp_url
                erp_url = self.state.active_erp_url
                return await self._load(batch, erp_url)

            result = await self._serializer.run(self.name, load)

            self.state.on_erp_success()
            self.state.clear_cache()
            _logger.info("[%s] Cycle done: %d inserted", self.name, result.inserted)
            self._report(JobStatus.IDLE, f"Cycle done, {result.inserted} positions inserted")
            return result
        except Exception as exc:
            await self._recover(exc, phase, erp_url)
            return None

    async def extract(self) -> PendingBatch | None:
        """Fetch and map positions. ``None`` when there is nothing usable."""
        token: str | None = None
        if self.adapter.requires_login:
            assert self.credentials is not None  # noqa: S101
            self._report(JobStatus.RUNNING, "Authenticating")
            token = await self.credentials.ensure_token()

        self._report(JobStatus.RUNNING, "Fetching positions")
        raw = await self.adapter.fetch_positions(token)
        positions = self.adapter.map_to_canonical(raw)
        if not positions:
            return None
        return PendingBatch(source=self.name, positions=tuple(positions), fetched_at=self._clock())

    async def _load(self, batch: PendingBatch, erp_url: str) -> ReconcileResult:
        return await self._engine.reconcile(
            batch,
            source=self.name,
            erp_url=erp_url,
            fabricante_id=self._fabricante_id,
        )

    async def _recover(self, exc: Exception, phase: CyclePhase, erp_url: str) -> None:
        kind = classify_error(exc)
        _logger.error("[%s] %s failed (%s): %s", self.name, phase.value, kind.value, exc)

        match kind:
            case ErrorKind.SOURCE_AUTH | ErrorKind.SOURCE_TRANSPORT:
                self._drop_credentials()
                self.state.clear_cache()
            case ErrorKind.SOURCE_TIMEOUT:
                self.state.clear_cache()
            case ErrorKind.ERP_AUTH:
                _logger.warning("[%s] ERP session rejected; the cached batch will be retried", self.name)
                self._erp.invalidate_session(erp_url)
            case ErrorKind.ERP_TRANSPORT:
                _logger.warning("[%s] ERP unreachable; the cached batch will be retried", self.name)
                self._erp.invalidate_session(erp_url)
                self.state.on_erp_transport_failure()
            case ErrorKind.UNEXPECTED:
                _logger.error("[%s] Unexpected error during %s", self.name, phase.value, exc_info=exc)
                self.state.clear_cache()
                if phase is CyclePhase.EXTRACT:
                    self._drop_credentials()
                else:
                    self._erp.invalidate_session(erp_url)
            case _:
                assert_never(kind)

        self._report(JobStatus.ERROR, str(exc) or type(exc).__name__)
        if self._retry_delay > 0:
            await self._sleep(self._retry_delay)

    def _drop_credentials(self) -> None:
        if self.credentials is not None:
            self.credentials.invalidate()

    def _report(self, status: JobStatus, message: str) -> None:
        if self._status_sink is None:
            return
        try:
            self._status_sink.report(self.name, status, message)
        except Exception:
            _logger.debug("Status sink failed", exc_info=True)
