"""HTTP transport shared by the provider and ERP endpoint modules."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from trackhub._constants import USER_AGENT
from trackhub.exceptions import HttpError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """JSON-over-HTTP transport with a bounded timeout on every call."""

    def __init__(self, http_session: aiohttp.ClientSession, *, default_timeout: float) -> None:
        self._http = http_session
        self._default_timeout = default_timeout

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        json_body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Every failure (network, timeout, non-2xx status, undecodable body)
        is raised as :class:`HttpError` so callers only map one type.
        """
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if json_body is not None:
            request_headers["content-type"] = "application/json; charset=UTF-8"
        if headers:
            request_headers.update(headers)

        effective_timeout = timeout if timeout is not None else self._default_timeout
        body = json.dumps(json_body) if json_body is not None else None

        _logger.debug("%s %s (timeout=%.0fs)", method, url, effective_timeout)

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(total=effective_timeout),
            ) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise HttpError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except HttpError:
            raise
        except TimeoutError as exc:
            raise HttpError(
                f"Request to {endpoint} timed out after {effective_timeout:.0f}s",
                endpoint=endpoint,
                timed_out=True,
            ) from exc
        except aiohttp.ClientError as exc:
            raise HttpError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise HttpError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=resp.status,
                endpoint=endpoint,
            ) from exc
