from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import pytest

from trackhub._api import atualcargo as atualcargo_api
from trackhub._api import positron as positron_api
from trackhub._api import sitrax as sitrax_api
from trackhub._api._common import join_url
from trackhub.config import AtualcargoConfig, PositronConfig, SitraxConfig
from trackhub.exceptions import HttpError, SourceAuthError, SourceRateLimitError, SourceTransportError
from trackhub.ingestion.atualcargo import AtualcargoAdapter
from trackhub.ingestion.positron import PositronAdapter


class _FakeTransport:
    def __init__(self, response: Any = None, error: HttpError | None = None) -> None:
        self._response = response
        self._error = error
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
        self.calls.append(
            {"method": method, "url": url, "body": json_body, "headers": dict(headers or {}), "timeout": timeout}
        )
        if self._error is not None:
            raise self._error
        return self._response


_ATUALCARGO = AtualcargoConfig(
    name="Atualcargo",
    enabled=True,
    url="https://ac.example/",
    fabricante_id="2",
    api_key="key-1",
    username="user",
    password="pw",
    token_ttl=270,
)
_SITRAX = SitraxConfig(
    name="Sitrax",
    enabled=True,
    url="https://sx.example",
    fabricante_id="3",
    login="acme",
    cgru_chave="G1",
    cusu_chave="U1",
)
_POSITRON = PositronConfig(
    name="Positron",
    enabled=True,
    url="https://px.example/api",
    fabricante_id="4",
    login="acme",
    password="pw",
)


def test_join_url_avoids_double_slashes() -> None:
    assert join_url("https://x.example/", "/a/b") == "https://x.example/a/b"
    assert join_url("https://x.example/api", "auth/token") == "https://x.example/api/auth/token"


@pytest.mark.asyncio
async def test_atualcargo_login_sends_access_key() -> None:
    transport = _FakeTransport({"token": "abc"})

    token = await atualcargo_api.login(_ATUALCARGO, transport, timeout=30)

    assert token == "abc"
    call = transport.calls[0]
    assert call["url"] == "https://ac.example/api/auth/v1/login"
    assert call["headers"]["access-key"] == "key-1"
    assert call["body"] == {"username": "user", "password": "pw"}


@pytest.mark.asyncio
async def test_atualcargo_login_without_token_is_auth_error() -> None:
    with pytest.raises(SourceAuthError):
        await atualcargo_api.login(_ATUALCARGO, _FakeTransport({"message": "ok"}))


@pytest.mark.asyncio
async def test_atualcargo_adapter_session_uses_configured_ttl() -> None:
    now = datetime(2026, 1, 1, tzinfo=UTC)
    adapter = AtualcargoAdapter(_ATUALCARGO, _FakeTransport({"token": "abc"}), clock=lambda: now)

    session = await adapter.login()

    assert session.token == "abc"
    assert session.ttl == 270
    assert session.expires_at is None


@pytest.mark.asyncio
async def test_atualcargo_positions_unwrap_envelope() -> None:
    transport = _FakeTransport({"code": 200, "data": [{"plate": "ABC1234"}]})

    records = await atualcargo_api.fetch_last_positions(_ATUALCARGO, transport, "abc", timeout=150)

    assert records == [{"plate": "ABC1234"}]
    assert transport.calls[0]["headers"]["authorization"] == "Bearer abc"
    assert transport.calls[0]["timeout"] == 150


@pytest.mark.asyncio
async def test_atualcargo_unexpected_envelope_is_empty() -> None:
    assert await atualcargo_api.fetch_last_positions(_ATUALCARGO, _FakeTransport({"code": 500}), "abc") == []
    assert await atualcargo_api.fetch_last_positions(_ATUALCARGO, _FakeTransport(None), "abc") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (401, SourceAuthError),
        (403, SourceAuthError),
        (425, SourceRateLimitError),
        (429, SourceRateLimitError),
        (500, SourceTransportError),
    ],
)
async def test_atualcargo_positions_error_mapping(status: int, expected: type[Exception]) -> None:
    transport = _FakeTransport(error=HttpError(f"HTTP {status}", status_code=status, endpoint="x"))

    with pytest.raises(expected) as exc_info:
        await atualcargo_api.fetch_last_positions(_ATUALCARGO, transport, "abc")

    assert type(exc_info.value) is expected


@pytest.mark.asyncio
async def test_timeouts_are_transport_errors_flagged_as_timed_out() -> None:
    transport = _FakeTransport(error=HttpError("timed out", endpoint="x", timed_out=True))

    with pytest.raises(SourceTransportError) as exc_info:
        await atualcargo_api.fetch_last_positions(_ATUALCARGO, transport, "abc")

    assert exc_info.value.timed_out is True


@pytest.mark.asyncio
async def test_gateway_timeout_is_flagged_as_timed_out() -> None:
    transport = _FakeTransport(error=HttpError("HTTP 504", status_code=504, endpoint="x"))

    with pytest.raises(SourceTransportError) as exc_info:
        await atualcargo_api.fetch_last_positions(_ATUALCARGO, transport, "abc")

    assert exc_info.value.timed_out is True


@pytest.mark.asyncio
async def test_sitrax_sends_credentials_in_body() -> None:
    transport = _FakeTransport({"posicoes": [{"cveiPlaca": "1"}]})

    records = await sitrax_api.fetch_last_positions(_SITRAX, transport)

    assert records == [{"cveiPlaca": "1"}]
    assert transport.calls[0]["url"] == "https://sx.example/ultimaposicao"
    assert transport.calls[0]["body"] == {"login": "acme", "cgruChave": "G1", "cusuChave": "U1", "pktId": 0}


@pytest.mark.asyncio
async def test_positron_login_returns_server_expiry() -> None:
    transport = _FakeTransport({"token": "px", "expires": "2026-01-01T12:00:00Z"})

    token, expires_at = await positron_api.login(_POSITRON, transport)

    assert token == "px"
    assert expires_at == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    assert transport.calls[0]["url"] == "https://px.example/api/auth/token"


@pytest.mark.asyncio
async def test_positron_adapter_session_carries_expiry() -> None:
    adapter = PositronAdapter(_POSITRON, _FakeTransport({"token": "px", "expires": 1767268800000}))

    session = await adapter.login()

    assert session.expires_at == datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
    assert session.ttl is None


@pytest.mark.asyncio
async def test_positron_login_400_is_auth_error() -> None:
    transport = _FakeTransport(error=HttpError("HTTP 400", status_code=400, endpoint="auth/token"))

    with pytest.raises(SourceAuthError):
        await positron_api.login(_POSITRON, transport)


@pytest.mark.asyncio
async def test_positron_login_without_expiry_is_auth_error() -> None:
    with pytest.raises(SourceAuthError):
        await positron_api.login(_POSITRON, _FakeTransport({"token": "px"}))


@pytest.mark.asyncio
async def test_positron_positions_are_a_bare_list() -> None:
    transport = _FakeTransport([{"serialNumber": "PX-1"}, "junk"])

    records = await positron_api.fetch_last_positions(_POSITRON, transport, "px")

    assert records == [{"serialNumber": "PX-1"}]
    assert transport.calls[0]["url"] == "https://px.example/api/position/latest?withAddress=true"
