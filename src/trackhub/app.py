"""Process wiring: builds every component from a :class:`HubConfig`."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from trackhub._transport import HttpTransport
from trackhub.config import AtualcargoConfig, HubConfig, PositronConfig, SitraxConfig, SourceConfig
from trackhub.erp.client import SankhyaClient
from trackhub.erp.lock import ErpAccessSerializer
from trackhub.erp.reconcile import ReconciliationEngine
from trackhub.exceptions import ConfigError, TrackHubError
from trackhub.ingestion.atualcargo import AtualcargoAdapter
from trackhub.ingestion.base import ProviderAdapter
from trackhub.ingestion.positron import PositronAdapter
from trackhub.ingestion.sitrax import SitraxAdapter
from trackhub.jobs.cycle import SourceJob
from trackhub.jobs.scheduler import JobScheduler
from trackhub.monitoring import StatusBoard
from trackhub.session import CredentialManager
from trackhub.state.endpoint import ErpEndpointState
from trackhub.state.job_state import JobState

_logger = logging.getLogger(__name__)


def build_adapter(source: SourceConfig, config: HubConfig, transport: HttpTransport) -> ProviderAdapter:
    """Create the adapter matching *source*'s config type."""
    if isinstance(source, AtualcargoConfig):
        return AtualcargoAdapter(
            source,
            transport,
            request_timeout=config.request_timeout,
            positions_timeout=config.positions_timeout,
        )
    if isinstance(source, SitraxConfig):
        return SitraxAdapter(source, transport, positions_timeout=config.positions_timeout)
    if isinstance(source, PositronConfig):
        return PositronAdapter(
            source,
            transport,
            request_timeout=config.request_timeout,
            positions_timeout=config.positions_timeout,
            time_zone=config.time_zone,
        )
    raise ConfigError(f"No adapter for source {source.name!r}")


class TrackHub:
    """Owns the HTTP session, the ERP client and one job per enabled source.

    Usage::

        async with TrackHub(HubConfig.from_env()) as hub:
            await hub.run_forever()
    """

    def __init__(self, config: HubConfig, *, session: aiohttp.ClientSession | None = None) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._scheduler: JobScheduler | None = None
        self.status = StatusBoard()
        self.serializer = ErpAccessSerializer()
        self.erp: SankhyaClient | None = None
        self.jobs: dict[str, SourceJob] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TrackHub:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        transport = HttpTransport(self._http_session, default_timeout=self._config.request_timeout)
        self.erp = SankhyaClient(self._config.erp, transport, timeout=self._config.request_timeout)
        engine = ReconciliationEngine(self.erp)

        for source in self._config.enabled_sources:
            adapter = build_adapter(source, self._config, transport)
            endpoint = ErpEndpointState(
                self._config.erp.url,
                self._config.erp.contingency_url,
                threshold=self._config.erp.failover_threshold,
            )
            self.erp.add_login_listener(endpoint.on_login)
            credentials = None
            if adapter.requires_login:
                credentials = CredentialManager(
                    source.name,
                    adapter.login,
                    expiry_margin=source.token_expiry_margin,
                    settle_delay=self._config.login_settle_delay,
                )
            self.jobs[source.name] = SourceJob(
                adapter,
                JobState(source.name, endpoint),
                credentials=credentials,
                engine=engine,
                serializer=self.serializer,
                erp=self.erp,
                fabricante_id=source.fabricante_id,
                status_sink=self.status,
                retry_delay=self._config.job_retry_delay,
            )
        if not self.jobs:
            _logger.warning("No source is enabled")
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self.erp = None
        self.jobs = {}

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def _require_jobs(self, names: list[str] | None) -> list[SourceJob]:
        if self.erp is None:
            raise TrackHubError("Hub not started. Use 'async with TrackHub(...) as hub:'")
        if not names:
            return list(self.jobs.values())
        lookup = {name.lower(): job for name, job in self.jobs.items()}
        missing = [name for name in names if name.lower() not in lookup]
        if missing:
            raise ConfigError(f"Unknown or disabled source(s): {', '.join(missing)}")
        return [lookup[name.lower()] for name in names]

    async def run_once(self, names: list[str] | None = None) -> None:
        """Run one cycle of each selected job, one after another."""
        for job in self._require_jobs(names):
            await job.run_cycle()

    def start(self, names: list[str] | None = None) -> JobScheduler:
        """Schedule the selected jobs at their configured intervals."""
        jobs = self._require_jobs(names)
        if self._scheduler is None:
            self._scheduler = JobScheduler()
        intervals = {source.name: source.interval for source in self._config.sources}
        for job in jobs:
            self._scheduler.schedule(job.name, job.run_cycle, intervals[job.name])
        return self._scheduler

    async def run_forever(self, names: list[str] | None = None) -> None:
        """Schedule the selected jobs and wait until :meth:`stop` is called."""
        scheduler = self.start(names)
        await scheduler.wait()

    async def stop(self) -> None:
        scheduler = self._scheduler
        self._scheduler = None
        if scheduler is not None:
            await scheduler.stop()
