"""Atualcargo adapter."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from trackhub._api import atualcargo as atualcargo_api
from trackhub._constants import ATUALCARGO_DATE_FORMAT
from trackhub._transport import Transport
from trackhub.config import AtualcargoConfig
from trackhub.ingestion.base import map_records
from trackhub.ingestion.normalize import parse_flag, parse_local_datetime
from trackhub.models.position import CanonicalPosition, PositionKind
from trackhub.models.providers import AtualcargoPosition
from trackhub.session import SourceSession

TAG_PLATE_PREFIX = "ISCA"
_IGNITION_ON = frozenset({"ON"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def to_canonical(record: AtualcargoPosition) -> CanonicalPosition | None:
    """Map one Atualcargo record. ``ISCA``-prefixed plates are tags."""
    observed_at = parse_local_datetime(record.date, ATUALCARGO_DATE_FORMAT)
    latlong = record.latlong
    if not record.plate or observed_at is None or latlong is None:
        return None
    if latlong.latitude is None or latlong.longitude is None:
        return None

    is_tag = record.plate.startswith(TAG_PLATE_PREFIX)
    identifier = record.plate.removeprefix(TAG_PLATE_PREFIX) if is_tag else record.plate
    if not identifier.strip():
        return None

    return CanonicalPosition(
        kind=PositionKind.TAG if is_tag else PositionKind.VEHICLE,
        identifier=identifier,
        insert_value=record.plate,
        observed_at=observed_at,
        latitude=latlong.latitude,
        longitude=latlong.longitude,
        speed=record.speed,
        ignition_on=parse_flag(record.ignition, _IGNITION_ON),
        location_label=record.proximity or (record.address.street if record.address else None),
    )


class AtualcargoAdapter:
    name = "Atualcargo"
    requires_login = True

    def __init__(
        self,
        config: AtualcargoConfig,
        transport: Transport,
        *,
        request_timeout: float | None = None,
        positions_timeout: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._transport = transport
        self._request_timeout = request_timeout
        self._positions_timeout = positions_timeout
        self._clock = clock

    async def login(self) -> SourceSession:
        token = await atualcargo_api.login(self._config, self._transport, timeout=self._request_timeout)
        # Tokens carry no expiry; bound them by the configured lifetime.
        return SourceSession(token=token, issued_at=self._clock(), ttl=self._config.token_ttl)

    async def fetch_positions(self, token: str | None) -> list[dict[str, Any]]:
        return await atualcargo_api.fetch_last_positions(
            self._config,
            self._transport,
            token or "",
            timeout=self._positions_timeout,
        )

    def map_to_canonical(self, raw: Sequence[Mapping[str, Any]]) -> list[CanonicalPosition]:
        return map_records(self.name, raw, AtualcargoPosition, to_canonical)
