"""Sankhya ``service.sbr`` JSON endpoints.

Every call goes to ``{base}/mge/service.sbr?serviceName=...&outputType=json``
with a ``{"serviceName": ..., "requestBody": ...}`` body. The response
carries a string ``status`` (``"1"`` = success) and a ``responseBody``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from trackhub._api._common import join_url
from trackhub._constants import (
    AUTH_FAILED_HTTP_STATUSES,
    SANKHYA_AUTH_FAILED_STATUSES,
    SANKHYA_LOGIN_SERVICE,
    SANKHYA_QUERY_SERVICE,
    SANKHYA_SAVE_SERVICE,
    SANKHYA_SERVICE_PATH,
    SANKHYA_STATUS_OK,
)
from trackhub._redact import redact_for_log
from trackhub._transport import Transport
from trackhub.exceptions import ErpApiError, ErpAuthError, ErpTransportError, HttpError

_logger = logging.getLogger(__name__)


def service_url(base_url: str, service: str) -> str:
    return f"{join_url(base_url, SANKHYA_SERVICE_PATH)}?serviceName={service}&outputType=json"


def _raise_for_status(payload: Any, *, url: str, service: str) -> dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise ErpApiError(f"{service} returned a non-object payload", url=url, service=service)
    status = str(payload.get("status", ""))
    if status == SANKHYA_STATUS_OK:
        return dict(payload)
    message = str(payload.get("statusMessage") or "no message")
    if status in SANKHYA_AUTH_FAILED_STATUSES:
        raise ErpAuthError(f"{service} rejected the session: {message}", url=url, service=service)
    raise ErpApiError(f"{service} failed: status={status} message={message}", url=url, service=service, status=status)


async def call_service(
    transport: Transport,
    base_url: str,
    service: str,
    request_body: Mapping[str, Any],
    *,
    session_id: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Call a Sankhya service and return its ``responseBody``.

    Raises
    ------
    ErpAuthError
        HTTP 401/403 or Sankhya status ``"3"``.
    ErpApiError
        Any other non-success Sankhya status.
    ErpTransportError
        Timeouts, 5xx and network failures.
    """
    headers = {"cookie": f"JSESSIONID={session_id}"} if session_id else None
    body = {"serviceName": service, "requestBody": dict(request_body)}
    _logger.debug("Sankhya %s request: %s", service, redact_for_log(body))
    try:
        payload = await transport.request_json(
            "POST",
            service_url(base_url, service),
            endpoint=service,
            json_body=body,
            headers=headers,
            timeout=timeout,
        )
    except HttpError as exc:
        if exc.status_code is not None and exc.status_code in AUTH_FAILED_HTTP_STATUSES:
            raise ErpAuthError(
                f"{service} rejected the session (HTTP {exc.status_code})",
                url=base_url,
                service=service,
                status_code=exc.status_code,
            ) from exc
        raise ErpTransportError(
            f"{service} failed: {exc}",
            url=base_url,
            service=service,
            status_code=exc.status_code,
        ) from exc

    checked = _raise_for_status(payload, url=base_url, service=service)
    response_body = checked.get("responseBody")
    return dict(response_body) if isinstance(response_body, Mapping) else {}


async def login(
    transport: Transport,
    base_url: str,
    username: str,
    password: str,
    *,
    timeout: float | None = None,
) -> str:
    """Open a session and return its ``JSESSIONID``.

    Any non-success status of the login service is an auth failure (bad
    credentials come back with status ``"0"``); only HTTP-level failures
    stay transport errors.
    """
    body = {
        "NOMUSU": {"$": username},
        "INTERNO": {"$": password},
        "KEEPCONNECTED": {"$": "S"},
    }
    try:
        response = await call_service(transport, base_url, SANKHYA_LOGIN_SERVICE, body, timeout=timeout)
    except ErpApiError as exc:
        raise ErpAuthError(
            f"Sankhya login rejected: {exc}",
            url=base_url,
            service=SANKHYA_LOGIN_SERVICE,
        ) from exc
    jsessionid = response.get("jsessionid")
    session_id = jsessionid.get("$") if isinstance(jsessionid, Mapping) else jsessionid
    if not session_id:
        raise ErpAuthError("Sankhya login returned no session id", url=base_url, service=SANKHYA_LOGIN_SERVICE)
    return str(session_id)


def rows_to_dicts(response: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Turn ``fieldsMetadata`` + positional ``rows`` into column dicts."""
    metadata = response.get("fieldsMetadata") or []
    columns = [str(field.get("name", "")).upper() for field in metadata if isinstance(field, Mapping)]
    rows = response.get("rows") or []
    return [dict(zip(columns, row, strict=False)) for row in rows if isinstance(row, Sequence)]


async def execute_query(
    transport: Transport,
    base_url: str,
    session_id: str,
    sql: str,
    *,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """Run a read-only SQL statement through ``DbExplorerSP.executeQuery``."""
    response = await call_service(
        transport,
        base_url,
        SANKHYA_QUERY_SERVICE,
        {"sql": sql},
        session_id=session_id,
        timeout=timeout,
    )
    return rows_to_dicts(response)


def build_save_body(entity: str, fields: Sequence[str], rows: Sequence[Sequence[Any]]) -> dict[str, Any]:
    """Build a ``DatasetSP.save`` body inserting *rows* into *entity*."""
    records = [{"values": {str(index): value for index, value in enumerate(row)}} for row in rows]
    return {
        "entityName": entity,
        "standAlone": False,
        "fields": list(fields),
        "records": records,
    }


async def save_records(
    transport: Transport,
    base_url: str,
    session_id: str,
    entity: str,
    fields: Sequence[str],
    rows: Sequence[Sequence[Any]],
    *,
    timeout: float | None = None,
) -> None:
    """Insert *rows* into *entity* in one ``DatasetSP.save`` call."""
    await call_service(
        transport,
        base_url,
        SANKHYA_SAVE_SERVICE,
        build_save_body(entity, fields, rows),
        session_id=session_id,
        timeout=timeout,
    )
