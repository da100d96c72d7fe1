"""Sitrax REST endpoint.

Sitrax has no login: the account keys travel in every request body.
"""

from __future__ import annotations

from typing import Any

from trackhub._api._common import join_url, source_error_from_http, unwrap_list
from trackhub._transport import Transport
from trackhub.config import SitraxConfig
from trackhub.exceptions import HttpError

SOURCE = "Sitrax"
POSITIONS_ENDPOINT = "/ultimaposicao"


def build_positions_request(config: SitraxConfig) -> dict[str, Any]:
    return {
        "login": config.login,
        "cgruChave": config.cgru_chave,
        "cusuChave": config.cusu_chave,
        "pktId": 0,
    }


async def fetch_last_positions(
    config: SitraxConfig,
    transport: Transport,
    *,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """Fetch the last position of every tag (``{"posicoes": [...]}``)."""
    try:
        data = await transport.request_json(
            "POST",
            join_url(config.url or "", POSITIONS_ENDPOINT),
            endpoint=POSITIONS_ENDPOINT,
            json_body=build_positions_request(config),
            timeout=timeout,
        )
    except HttpError as exc:
        raise source_error_from_http(exc, source=SOURCE) from exc
    return unwrap_list(data, "posicoes", source=SOURCE, endpoint=POSITIONS_ENDPOINT)
