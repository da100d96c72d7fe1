"""Sitrax adapter. Sitrax only reports tags and needs no login."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from trackhub._api import sitrax as sitrax_api
from trackhub._constants import SITRAX_DATE_FORMAT
from trackhub._transport import Transport
from trackhub.config import SitraxConfig
from trackhub.exceptions import SourceAuthError
from trackhub.ingestion.base import map_records
from trackhub.ingestion.normalize import parse_flag, parse_local_datetime
from trackhub.models.position import CanonicalPosition, PositionKind
from trackhub.models.providers import SitraxPosition
from trackhub.session import SourceSession

_IGNITION_ON = frozenset({"S"})


def location_label(record: SitraxPosition) -> str:
    return f"{record.trua_nome or ''}, {record.tmun_nome or ''} - {record.test_abrev or ''}"


def to_canonical(record: SitraxPosition) -> CanonicalPosition | None:
    observed_at = parse_local_datetime(record.llpo_data_status, SITRAX_DATE_FORMAT)
    if not record.cvei_placa or not record.cequ_sn or observed_at is None:
        return None
    if record.llpo_latitude is None or record.llpo_longitude is None:
        return None
    return CanonicalPosition(
        kind=PositionKind.TAG,
        identifier=record.cvei_placa,
        insert_value=record.cequ_sn,
        observed_at=observed_at,
        latitude=record.llpo_latitude,
        longitude=record.llpo_longitude,
        speed=record.llpo_velocidade,
        ignition_on=parse_flag(record.llpo_ign, _IGNITION_ON),
        location_label=location_label(record),
    )


class SitraxAdapter:
    name = "Sitrax"
    requires_login = False

    def __init__(
        self,
        config: SitraxConfig,
        transport: Transport,
        *,
        positions_timeout: float | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._positions_timeout = positions_timeout

    async def login(self) -> SourceSession:
        raise SourceAuthError("Sitrax has no login endpoint", source=self.name)

    async def fetch_positions(self, token: str | None) -> list[dict[str, Any]]:
        return await sitrax_api.fetch_last_positions(self._config, self._transport, timeout=self._positions_timeout)

    def map_to_canonical(self, raw: Sequence[Mapping[str, Any]]) -> list[CanonicalPosition]:
        return map_records(self.name, raw, SitraxPosition, to_canonical)
