"""Provider session state and the per-source credential manager."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, model_validator

from trackhub.exceptions import SourceAuthError
from trackhub.state.policy import is_expired

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SourceSession(BaseModel):
    """Token obtained from a provider login.

    Parameters
    ----------
    token : str
        Bearer token sent with extract calls.
    issued_at : datetime
        When the login completed (timezone-aware).
    expires_at : datetime or None
        Server-declared expiry, when the provider returns one.
    ttl : float or None
        Lifetime in seconds, for providers whose tokens carry no expiry.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    token: str
    issued_at: datetime
    expires_at: datetime | None = None
    ttl: float | None = None

    @model_validator(mode="after")
    def _require_expiry_signal(self) -> SourceSession:
        if not self.token:
            raise ValueError("token must not be empty")
        if self.expires_at is None and self.ttl is None:
            raise ValueError("a session needs either expires_at or ttl")
        return self

    @property
    def deadline(self) -> datetime:
        """The earliest moment the session stops being usable."""
        candidates: list[datetime] = []
        if self.expires_at is not None:
            candidates.append(self.expires_at)
        if self.ttl is not None:
            candidates.append(self.issued_at + timedelta(seconds=self.ttl))
        return min(candidates)

    def is_expired(self, now: datetime, margin: float = 0.0) -> bool:
        """Whether the session is (or will be within *margin* seconds) expired."""
        return is_expired(now, self.deadline - timedelta(seconds=margin))


LoginFn = Callable[[], Awaitable[SourceSession]]


class CredentialManager:
    """Owns the session of one provider.

    Concurrent callers of :meth:`ensure_token` share a single login; the new
    session replaces the old one in one assignment, so a reader sees either
    the previous session or the new one, never a mix.
    """

    def __init__(
        self,
        source: str,
        login: LoginFn,
        *,
        expiry_margin: float = 0.0,
        settle_delay: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._login = login
        self._expiry_margin = expiry_margin
        self._settle_delay = settle_delay
        self._clock = clock
        self._sleep = sleep
        self._session: SourceSession | None = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> SourceSession | None:
        """The current session, or ``None`` when absent or expired."""
        current = self._session
        if current is None or current.is_expired(self._clock(), self._expiry_margin):
            return None
        return current

    async def ensure_token(self) -> str:
        """Return a valid token, logging in when needed.

        Raises
        ------
        SourceAuthError
            If the provider refuses the credentials or returns no token.
        SourceTransportError
            If the provider cannot be reached.
        """
        current = self.session
        if current is not None:
            return current.token

        async with self._lock:
            # Another caller may have logged in while we waited.
            current = self.session
            if current is not None:
                return current.token

            _logger.info("Logging in to %s", self._source)
            fresh = await self._login()
            if not fresh.token:
                raise SourceAuthError(f"{self._source} login returned no token", source=self._source)
            self._session = fresh
            _logger.debug("%s session valid until %s", self._source, fresh.deadline.isoformat())

            if self._settle_delay > 0:
                await self._sleep(self._settle_delay)
            return fresh.token

    def invalidate(self) -> None:
        """Drop the session so the next call logs in again."""
        if self._session is not None:
            _logger.debug("Dropping %s session", self._source)
        self._session = None
