"""Sankhya client holding one session per ERP URL."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from trackhub._api import sankhya as sankhya_api
from trackhub._transport import Transport
from trackhub.config import ErpConfig

_logger = logging.getLogger(__name__)

LoginListener = Callable[[str], None]


class ErpGateway(Protocol):
    """What the reconciliation engine needs from the ERP."""

    async def query(self, sql: str, url: str) -> list[dict[str, Any]]:
        ...

    async def insert(self, entity: str, fields: Sequence[str], rows: Sequence[Sequence[Any]], url: str) -> None:
        ...

    def invalidate_session(self, url: str) -> None:
        ...


class SankhyaClient:
    """Logs in lazily per URL and runs queries and inserts.

    Login listeners are told the URL of every successful login; the job
    states use it to return to the primary ERP.
    """

    def __init__(self, config: ErpConfig, transport: Transport, *, timeout: float | None = None) -> None:
        self._config = config
        self._transport = transport
        self._timeout = timeout
        self._sessions: dict[str, str] = {}
        self._login_lock = asyncio.Lock()
        self._login_listeners: list[LoginListener] = []

    def add_login_listener(self, listener: LoginListener) -> None:
        self._login_listeners.append(listener)

    def has_session(self, url: str) -> bool:
        return url in self._sessions

    async def ensure_session(self, url: str) -> str:
        """Return the session id for *url*, logging in if there is none."""
        session_id = self._sessions.get(url)
        if session_id is not None:
            return session_id

        async with self._login_lock:
            session_id = self._sessions.get(url)
            if session_id is not None:
                return session_id
            _logger.info("Logging in to Sankhya at %s", url)
            session_id = await sankhya_api.login(
                self._transport,
                url,
                self._config.username,
                self._config.password,
                timeout=self._timeout,
            )
            self._sessions[url] = session_id

        for listener in list(self._login_listeners):
            try:
                listener(url)
            except Exception:
                _logger.debug("ERP login listener failed", exc_info=True)
        return session_id

    def invalidate_session(self, url: str) -> None:
        if self._sessions.pop(url, None) is not None:
            _logger.info("Dropped Sankhya session for %s", url)

    async def query(self, sql: str, url: str) -> list[dict[str, Any]]:
        session_id = await self.ensure_session(url)
        rows = await sankhya_api.execute_query(self._transport, url, session_id, sql, timeout=self._timeout)
        _logger.debug("Query returned %d rows", len(rows))
        return rows

    async def insert(self, entity: str, fields: Sequence[str], rows: Sequence[Sequence[Any]], url: str) -> None:
        session_id = await self.ensure_session(url)
        await sankhya_api.save_records(
            self._transport,
            url,
            session_id,
            entity,
            fields,
            rows,
            timeout=self._timeout,
        )
        _logger.debug("Inserted %d rows into %s", len(rows), entity)
