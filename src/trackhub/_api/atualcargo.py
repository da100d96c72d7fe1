"""Atualcargo REST endpoints."""

from __future__ import annotations

import logging
from typing import Any

from trackhub._api._common import join_url, source_error_from_http, unwrap_list
from trackhub._redact import redact_for_log
from trackhub._transport import Transport
from trackhub.config import AtualcargoConfig
from trackhub.exceptions import HttpError, SourceAuthError, SourceTransportError

_logger = logging.getLogger(__name__)

SOURCE = "Atualcargo"
LOGIN_ENDPOINT = "/api/auth/v1/login"
POSITIONS_ENDPOINT = "/api/positions/v1/last"


async def login(config: AtualcargoConfig, transport: Transport, *, timeout: float | None = None) -> str:
    """Authenticate and return the bearer token."""
    body = {"username": config.username, "password": config.password}
    _logger.debug("Atualcargo login request: %s", redact_for_log(body))
    try:
        data = await transport.request_json(
            "POST",
            join_url(config.url or "", LOGIN_ENDPOINT),
            endpoint=LOGIN_ENDPOINT,
            json_body=body,
            headers={"access-key": config.api_key or ""},
            timeout=timeout,
        )
    except HttpError as exc:
        raise source_error_from_http(exc, source=SOURCE) from exc

    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise SourceAuthError(
            "Atualcargo login response carried no token",
            source=SOURCE,
            endpoint=LOGIN_ENDPOINT,
        )
    return str(token)


async def fetch_last_positions(
    config: AtualcargoConfig,
    transport: Transport,
    token: str,
    *,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """Fetch the last known position of every tracked plate.

    The endpoint answers with ``{"code": 200, "data": [...]}``.
    """
    try:
        data = await transport.request_json(
            "GET",
            join_url(config.url or "", POSITIONS_ENDPOINT),
            endpoint=POSITIONS_ENDPOINT,
            headers={"authorization": f"Bearer {token}", "access-key": config.api_key or ""},
            timeout=timeout,
        )
    except HttpError as exc:
        if exc.status_code == 504:
            raise SourceTransportError(
                "Atualcargo gateway timed out fetching positions",
                source=SOURCE,
                endpoint=POSITIONS_ENDPOINT,
                status_code=504,
                timed_out=True,
            ) from exc
        raise source_error_from_http(exc, source=SOURCE) from exc

    if isinstance(data, dict) and data.get("code") not in (None, 200):
        _logger.warning("Atualcargo positions returned code=%s", data.get("code"))
        return []
    return unwrap_list(data, "data", source=SOURCE, endpoint=POSITIONS_ENDPOINT)
