"""Positron REST endpoints."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from trackhub._api._common import join_url, source_error_from_http, unwrap_list
from trackhub._constants import AUTH_FAILED_HTTP_STATUSES
from trackhub._transport import Transport
from trackhub.config import PositronConfig
from trackhub.exceptions import HttpError, SourceAuthError

_logger = logging.getLogger(__name__)

SOURCE = "Positron"
LOGIN_ENDPOINT = "auth/token"
POSITIONS_ENDPOINT = "position/latest?withAddress=true"

# Positron answers a bad login with 400 as well as 401.
_LOGIN_AUTH_STATUSES: frozenset[int] = AUTH_FAILED_HTTP_STATUSES | {400}

# Threshold to distinguish epoch seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_expiry(value: Any) -> datetime | None:
    """Convert the login ``expires`` field (ISO string or epoch) to aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000
        return datetime.fromtimestamp(ts, tz=UTC)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


async def login(
    config: PositronConfig,
    transport: Transport,
    *,
    timeout: float | None = None,
) -> tuple[str, datetime]:
    """Authenticate and return ``(token, expires_at)``."""
    try:
        data = await transport.request_json(
            "POST",
            join_url(config.url or "", LOGIN_ENDPOINT),
            endpoint=LOGIN_ENDPOINT,
            json_body={"login": config.login, "password": config.password},
            timeout=timeout,
        )
    except HttpError as exc:
        raise source_error_from_http(exc, source=SOURCE, auth_statuses=_LOGIN_AUTH_STATUSES) from exc

    token = data.get("token") if isinstance(data, dict) else None
    expires_at = parse_expiry(data.get("expires")) if isinstance(data, dict) else None
    if not token or expires_at is None:
        raise SourceAuthError(
            "Positron login response carried no token or expiry",
            source=SOURCE,
            endpoint=LOGIN_ENDPOINT,
        )
    _logger.info("Positron token expires at %s", expires_at.isoformat())
    return str(token), expires_at


async def fetch_last_positions(
    config: PositronConfig,
    transport: Transport,
    token: str,
    *,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """Fetch the latest position of every device (a bare JSON list)."""
    try:
        data = await transport.request_json(
            "GET",
            join_url(config.url or "", POSITIONS_ENDPOINT),
            endpoint=POSITIONS_ENDPOINT,
            headers={"authorization": f"Bearer {token}"},
            timeout=timeout,
        )
    except HttpError as exc:
        raise source_error_from_http(exc, source=SOURCE) from exc
    return unwrap_list(data, None, source=SOURCE, endpoint=POSITIONS_ENDPOINT)
