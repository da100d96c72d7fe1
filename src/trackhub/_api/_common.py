"""Shared helpers for provider endpoint modules.

This module centralizes the most repeated patterns:
- joining a configured base URL with an endpoint path
- translating transport failures into the source error family
- unwrapping list envelopes

It is internal to trackhub and may change at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from trackhub._constants import AUTH_FAILED_HTTP_STATUSES, RATE_LIMIT_HTTP_STATUSES
from trackhub._redact import redact_for_log
from trackhub.exceptions import (
    HttpError,
    SourceAuthError,
    SourceError,
    SourceRateLimitError,
    SourceTransportError,
)

_logger = logging.getLogger(__name__)


def join_url(base_url: str, path: str) -> str:
    """Join *base_url* and *path* with exactly one slash between them."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def source_error_from_http(
    exc: HttpError,
    *,
    source: str,
    auth_statuses: frozenset[int] = AUTH_FAILED_HTTP_STATUSES,
) -> SourceError:
    """Translate a transport failure into the source error family."""
    status = exc.status_code
    if status is not None and status in auth_statuses:
        return SourceAuthError(
            f"{source} rejected credentials (HTTP {status})",
            source=source,
            endpoint=exc.endpoint,
            status_code=status,
        )
    if status is not None and status in RATE_LIMIT_HTTP_STATUSES:
        return SourceRateLimitError(
            f"{source} rate limited the request (HTTP {status})",
            source=source,
            endpoint=exc.endpoint,
            status_code=status,
        )
    return SourceTransportError(
        f"{source} request failed: {exc}",
        source=source,
        endpoint=exc.endpoint,
        status_code=status,
        timed_out=exc.timed_out,
    )


def unwrap_list(payload: Any, key: str | None, *, source: str, endpoint: str) -> list[dict[str, Any]]:
    """Return the record list of a positions response.

    An unexpected shape is logged and treated as "no positions".
    """
    items = payload.get(key) if key is not None and isinstance(payload, Mapping) else payload
    if not isinstance(items, list):
        _logger.warning("%s %s returned an unexpected payload: %s", source, endpoint, redact_for_log(payload))
        return []
    return [item for item in items if isinstance(item, Mapping)]
