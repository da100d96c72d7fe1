"""Custom exception hierarchy for trackhub."""

from __future__ import annotations


class TrackHubError(Exception):
    """Base exception for all trackhub errors."""


class ConfigError(TrackHubError):
    """Invalid or missing configuration."""


class HttpError(TrackHubError):
    """HTTP-level failure (network, timeout, non-2xx, invalid JSON).

    Raised by the transport only. Endpoint modules translate it into the
    source or ERP family before it reaches the pipeline.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        timed_out: bool = False,
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.timed_out = timed_out
        super().__init__(message)


# ---------------------------------------------------------------------------
# Tracking providers
# ---------------------------------------------------------------------------


class SourceError(TrackHubError):
    """A tracking provider call failed."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)


class SourceAuthError(SourceError):
    """Login failed, or the provider rejected the token (401/403).

    Tokens can be revoked server-side before their declared expiry, so this
    is raised for extract calls as well as for the login itself.
    """


class SourceTransportError(SourceError):
    """Provider unreachable, timed out, or answered with a server error."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        endpoint: str = "",
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        self.timed_out = timed_out
        super().__init__(message, source=source, endpoint=endpoint, status_code=status_code)


class SourceRateLimitError(SourceTransportError):
    """Provider asked us to slow down (HTTP 425 / 429)."""


# ---------------------------------------------------------------------------
# ERP
# ---------------------------------------------------------------------------


class ErpError(TrackHubError):
    """An ERP call failed."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        service: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.service = service
        self.status_code = status_code
        super().__init__(message)


class ErpAuthError(ErpError):
    """ERP login failed or the session was rejected."""


class ErpTransportError(ErpError):
    """ERP unreachable, timed out, or answered with a server error."""


class ErpApiError(ErpTransportError):
    """ERP answered but reported an application-level failure.

    Counted like a transport failure for endpoint failover.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        service: str = "",
        status: str = "",
    ) -> None:
        self.status = status
        super().__init__(message, url=url, service=service)


# ---------------------------------------------------------------------------
# Pipeline state
# ---------------------------------------------------------------------------


class BatchPendingError(TrackHubError):
    """A new batch was offered while another one is still awaiting commit."""


class ErpAccessReentryError(TrackHubError):
    """The ERP access gate was requested by the task that already holds it."""
