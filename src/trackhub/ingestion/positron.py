"""Positron adapter. Positron only reports tags, keyed by device serial."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from trackhub._api import positron as positron_api
from trackhub._constants import DEFAULT_TIME_ZONE
from trackhub._transport import Transport
from trackhub.config import PositronConfig
from trackhub.ingestion.base import map_records
from trackhub.ingestion.normalize import parse_flag, parse_iso_to_local, safe_str
from trackhub.models.position import CanonicalPosition, PositionKind
from trackhub.models.providers import PositronPosition
from trackhub.session import SourceSession

_IGNITION_ON = frozenset({"ON", "S", "TRUE", "1"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def address_label(address: Any) -> str | None:
    """Positron sends the address either as text or as an object."""
    if isinstance(address, Mapping):
        street = safe_str(address.get("street") or address.get("address"))
        city = safe_str(address.get("city"))
        state = safe_str(address.get("state"))
        parts = [part for part in (street, city) if part]
        label = ", ".join(parts)
        if state:
            label = f"{label} - {state}" if label else state
        return label or None
    return safe_str(address)


class PositronAdapter:
    name = "Positron"
    requires_login = True

    def __init__(
        self,
        config: PositronConfig,
        transport: Transport,
        *,
        request_timeout: float | None = None,
        positions_timeout: float | None = None,
        time_zone: str = DEFAULT_TIME_ZONE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._transport = transport
        self._request_timeout = request_timeout
        self._positions_timeout = positions_timeout
        self._time_zone = time_zone
        self._clock = clock

    async def login(self) -> SourceSession:
        token, expires_at = await positron_api.login(self._config, self._transport, timeout=self._request_timeout)
        return SourceSession(token=token, issued_at=self._clock(), expires_at=expires_at)

    async def fetch_positions(self, token: str | None) -> list[dict[str, Any]]:
        return await positron_api.fetch_last_positions(
            self._config,
            self._transport,
            token or "",
            timeout=self._positions_timeout,
        )

    def to_canonical(self, record: PositronPosition) -> CanonicalPosition | None:
        observed_at = parse_iso_to_local(record.date, self._time_zone)
        if not record.serial_number or observed_at is None:
            return None
        if record.latitude is None or record.longitude is None:
            return None
        return CanonicalPosition(
            kind=PositionKind.TAG,
            identifier=record.serial_number,
            insert_value=record.serial_number,
            observed_at=observed_at,
            latitude=record.latitude,
            longitude=record.longitude,
            speed=record.speed,
            ignition_on=parse_flag(record.ignition, _IGNITION_ON),
            location_label=address_label(record.address),
        )

    def map_to_canonical(self, raw: Sequence[Mapping[str, Any]]) -> list[CanonicalPosition]:
        return map_records(self.name, raw, PositronPosition, self.to_canonical)
