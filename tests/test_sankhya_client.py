from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from trackhub._api import sankhya as sankhya_api
from trackhub.config import ErpConfig
from trackhub.erp.client import SankhyaClient
from trackhub.exceptions import ErpApiError, ErpAuthError, ErpTransportError, HttpError

PRIMARY = "https://erp.example"
CONTINGENCY = "https://erp-backup.example"


class _ScriptedTransport:
    """Returns queued responses per service name; an exception entry is raised."""

    def __init__(self, responses: dict[str, list[Any]]) -> None:
        self._responses = responses
        self.calls: list[dict[str, Any]] = []

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
        self.calls.append({"url": url, "endpoint": endpoint, "body": json_body, "headers": dict(headers or {})})
        response = self._responses[endpoint].pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _login_ok(session_id: str = "JS-1") -> dict[str, Any]:
    return {"status": "1", "responseBody": {"jsessionid": {"$": session_id}}}


def _query_ok() -> dict[str, Any]:
    return {
        "status": "1",
        "responseBody": {
            "fieldsMetadata": [{"name": "CODVEICULO"}, {"name": "PLACA"}],
            "rows": [[55, "ABC1234"], [56, "DEF5678"]],
        },
    }


def _client(transport: _ScriptedTransport) -> SankhyaClient:
    config = ErpConfig(url=PRIMARY, username="integracao", password="s3cret", contingency_url=CONTINGENCY)
    return SankhyaClient(config, transport, timeout=30)


@pytest.mark.asyncio
async def test_query_logs_in_once_and_sends_session_cookie() -> None:
    transport = _ScriptedTransport(
        {
            "MobileLoginSP.login": [_login_ok()],
            "DbExplorerSP.executeQuery": [_query_ok(), _query_ok()],
        }
    )
    client = _client(transport)

    rows = await client.query("SELECT 1", PRIMARY)
    await client.query("SELECT 1", PRIMARY)

    assert rows == [{"CODVEICULO": 55, "PLACA": "ABC1234"}, {"CODVEICULO": 56, "PLACA": "DEF5678"}]
    login, first, _second = transport.calls
    assert login["body"]["requestBody"]["NOMUSU"] == {"$": "integracao"}
    assert login["url"] == f"{PRIMARY}/mge/service.sbr?serviceName=MobileLoginSP.login&outputType=json"
    assert first["headers"]["cookie"] == "JSESSIONID=JS-1"
    assert first["body"]["requestBody"] == {"sql": "SELECT 1"}


@pytest.mark.asyncio
async def test_sessions_are_kept_per_url_and_login_listeners_notified() -> None:
    transport = _ScriptedTransport(
        {
            "MobileLoginSP.login": [_login_ok("JS-P"), _login_ok("JS-C")],
            "DbExplorerSP.executeQuery": [_query_ok(), _query_ok()],
        }
    )
    client = _client(transport)
    logins: list[str] = []
    client.add_login_listener(logins.append)

    await client.query("SELECT 1", PRIMARY)
    await client.query("SELECT 1", CONTINGENCY)

    assert logins == [PRIMARY, CONTINGENCY]
    assert transport.calls[-1]["headers"]["cookie"] == "JSESSIONID=JS-C"


@pytest.mark.asyncio
async def test_invalidate_session_forces_new_login() -> None:
    transport = _ScriptedTransport(
        {
            "MobileLoginSP.login": [_login_ok("JS-1"), _login_ok("JS-2")],
            "DbExplorerSP.executeQuery": [_query_ok(), _query_ok()],
        }
    )
    client = _client(transport)

    await client.query("SELECT 1", PRIMARY)
    client.invalidate_session(PRIMARY)
    assert not client.has_session(PRIMARY)
    await client.query("SELECT 1", PRIMARY)

    assert transport.calls[-1]["headers"]["cookie"] == "JSESSIONID=JS-2"


@pytest.mark.asyncio
async def test_status_3_is_an_auth_error() -> None:
    transport = _ScriptedTransport(
        {
            "MobileLoginSP.login": [_login_ok()],
            "DbExplorerSP.executeQuery": [{"status": "3", "statusMessage": "Nao autorizado."}],
        }
    )
    with pytest.raises(ErpAuthError):
        await _client(transport).query("SELECT 1", PRIMARY)


@pytest.mark.asyncio
async def test_other_status_is_an_api_error_counted_as_transport() -> None:
    transport = _ScriptedTransport(
        {
            "MobileLoginSP.login": [_login_ok()],
            "DatasetSP.save": [{"status": "0", "statusMessage": "ORA-00001"}],
        }
    )
    with pytest.raises(ErpApiError) as exc_info:
        await _client(transport).insert("AD_LOCATCAR", ["CODVEICULO"], [[55]], PRIMARY)

    assert isinstance(exc_info.value, ErpTransportError)
    assert exc_info.value.status == "0"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (HttpError("HTTP 401", status_code=401, endpoint="DbExplorerSP.executeQuery"), ErpAuthError),
        (HttpError("HTTP 503", status_code=503, endpoint="DbExplorerSP.executeQuery"), ErpTransportError),
        (HttpError("timed out", endpoint="DbExplorerSP.executeQuery", timed_out=True), ErpTransportError),
    ],
)
async def test_http_failures_are_mapped(error: HttpError, expected: type[Exception]) -> None:
    transport = _ScriptedTransport({"MobileLoginSP.login": [_login_ok()], "DbExplorerSP.executeQuery": [error]})

    with pytest.raises(expected):
        await _client(transport).query("SELECT 1", PRIMARY)


@pytest.mark.asyncio
async def test_login_without_session_id_is_an_auth_error() -> None:
    transport = _ScriptedTransport({"MobileLoginSP.login": [{"status": "1", "responseBody": {}}]})

    with pytest.raises(ErpAuthError):
        await _client(transport).query("SELECT 1", PRIMARY)


@pytest.mark.asyncio
async def test_rejected_login_is_an_auth_error_whatever_the_status() -> None:
    transport = _ScriptedTransport(
        {"MobileLoginSP.login": [{"status": "0", "statusMessage": "Usuario/Senha invalido."}]}
    )

    with pytest.raises(ErpAuthError) as exc_info:
        await _client(transport).query("SELECT 1", PRIMARY)

    assert not isinstance(exc_info.value, ErpTransportError)


@pytest.mark.asyncio
async def test_login_http_failure_stays_a_transport_error() -> None:
    transport = _ScriptedTransport(
        {"MobileLoginSP.login": [HttpError("HTTP 502", status_code=502, endpoint="MobileLoginSP.login")]}
    )

    with pytest.raises(ErpTransportError):
        await _client(transport).query("SELECT 1", PRIMARY)


def test_save_body_layout() -> None:
    body = sankhya_api.build_save_body("AD_LOCATISC", ["SEQUENCIA", "PLACA"], [[7, "ISCA1"], [8, "ISCA2"]])

    assert body == {
        "entityName": "AD_LOCATISC",
        "standAlone": False,
        "fields": ["SEQUENCIA", "PLACA"],
        "records": [
            {"values": {"0": 7, "1": "ISCA1"}},
            {"values": {"0": 8, "1": "ISCA2"}},
        ],
    }
