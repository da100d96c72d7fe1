from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from trackhub._constants import DEFAULT_LOCATION_LABEL
from trackhub.config import AtualcargoConfig, PositronConfig, SitraxConfig
from trackhub.ingestion.atualcargo import AtualcargoAdapter
from trackhub.ingestion.positron import PositronAdapter, address_label
from trackhub.ingestion.sitrax import SitraxAdapter
from trackhub.models.position import PositionKind


class _NoTransport:
    async def request_json(self, *_args: Any, **_kwargs: Any) -> Any:
        raise AssertionError("mapping must not touch the network")


def _atualcargo() -> AtualcargoAdapter:
    config = AtualcargoConfig(name="Atualcargo", enabled=True, url="https://ac.example", fabricante_id="2")
    return AtualcargoAdapter(config, _NoTransport())


def _sitrax() -> SitraxAdapter:
    config = SitraxConfig(name="Sitrax", enabled=True, url="https://sx.example", fabricante_id="3")
    return SitraxAdapter(config, _NoTransport())


def _positron() -> PositronAdapter:
    config = PositronConfig(name="Positron", enabled=True, url="https://px.example", fabricante_id="4")
    return PositronAdapter(config, _NoTransport(), time_zone="America/Sao_Paulo")


def test_atualcargo_vehicle_and_tag_split() -> None:
    raw = [
        {
            "plate": "ABC1234",
            "date": "2025-11-07 15:38:12",
            "latlong": {"latitude": -23.5, "longitude": -46.6},
            "speed": 54,
            "ignition": "ON",
            "proximity": "Posto Graal",
        },
        {
            "plate": "ISCA998877",
            "date": "2025-11-07 15:40:00",
            "latlong": {"latitude": -22.9, "longitude": -43.2},
            "ignition": "OFF",
            "address": {"street": "Rua A, 100"},
        },
    ]

    vehicle, tag = _atualcargo().map_to_canonical(raw)

    assert vehicle.kind is PositionKind.VEHICLE
    assert vehicle.identifier == "ABC1234"
    assert vehicle.insert_value == "ABC1234"
    assert vehicle.observed_at == datetime(2025, 11, 7, 15, 38, 12)
    assert vehicle.speed == 54
    assert vehicle.ignition_on is True
    assert vehicle.location_label == "Posto Graal"

    assert tag.kind is PositionKind.TAG
    assert tag.identifier == "998877"
    assert tag.insert_value == "ISCA998877"
    assert tag.speed == 0
    assert tag.ignition_on is False
    assert tag.location_label == "Rua A, 100"


def test_atualcargo_drops_invalid_records(caplog: pytest.LogCaptureFixture) -> None:
    raw = [
        {"plate": "ABC1234", "date": "not a date", "latlong": {"latitude": 1, "longitude": 2}},
        {"plate": "ABC1235", "date": "2025-11-07 15:38:12"},
        {"date": "2025-11-07 15:38:12", "latlong": {"latitude": 1, "longitude": 2}},
        {"plate": "ISCA", "date": "2025-11-07 15:38:12", "latlong": {"latitude": 1, "longitude": 2}},
        {"plate": "ABC1236", "date": "2025-11-07 15:38:12", "latlong": {"latitude": 1, "longitude": 2}},
    ]

    with caplog.at_level("WARNING"):
        mapped = _atualcargo().map_to_canonical(raw)

    assert [p.identifier for p in mapped] == ["ABC1236"]
    assert mapped[0].location_label == DEFAULT_LOCATION_LABEL
    assert sum("Dropped invalid record" in r.message for r in caplog.records) == 4


def test_sitrax_maps_every_record_as_tag() -> None:
    raw = [
        {
            "cveiPlaca": 556677,
            "cequSN": "EQ-0042",
            "llpoDataStatus": "03/11/2025 08:38:00",
            "llpoLatitude": "-19,92",
            "llpoLongitude": "-43,94",
            "llpoVelocidade": 12,
            "llpoIgn": "S",
            "truaNome": "Av. Afonso Pena",
            "tmunNome": "Belo Horizonte",
            "testAbrev": "MG",
        }
    ]

    (position,) = _sitrax().map_to_canonical(raw)

    assert position.kind is PositionKind.TAG
    assert position.identifier == "556677"
    assert position.insert_value == "EQ-0042"
    assert position.observed_at == datetime(2025, 11, 3, 8, 38)
    assert position.latitude == -19.92
    assert position.ignition_on is True
    assert position.location_label == "Av. Afonso Pena, Belo Horizonte - MG"


def test_sitrax_drops_records_without_serial() -> None:
    raw = [
        {
            "cveiPlaca": "556677",
            "llpoDataStatus": "03/11/2025 08:38:00",
            "llpoLatitude": -19.9,
            "llpoLongitude": -43.9,
        }
    ]
    assert _sitrax().map_to_canonical(raw) == []


def test_positron_converts_iso_dates_to_local_time() -> None:
    raw = [
        {
            "serialNumber": "PX-1",
            "date": "2025-11-07T18:00:00Z",
            "latitude": -23.5,
            "longitude": -46.6,
            "speed": None,
            "ignition": True,
            "address": {"street": "Rua B", "city": "Campinas", "state": "SP"},
        }
    ]

    (position,) = _positron().map_to_canonical(raw)

    assert position.kind is PositionKind.TAG
    assert position.identifier == "PX-1"
    assert position.insert_value == "PX-1"
    assert position.observed_at == datetime(2025, 11, 7, 15, 0)
    assert position.speed == 0
    assert position.ignition_on is True
    assert position.location_label == "Rua B, Campinas - SP"


def test_positron_address_label_accepts_text() -> None:
    assert address_label("Rodovia SP-330, km 90") == "Rodovia SP-330, km 90"
    assert address_label(None) is None
    assert address_label({}) is None
