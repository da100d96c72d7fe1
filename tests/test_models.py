from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from trackhub._constants import DEFAULT_LOCATION_LABEL
from trackhub.models import AtualcargoPosition, CanonicalPosition, PendingBatch, PositionKind, SitraxPosition


def _position(**overrides: object) -> CanonicalPosition:
    values: dict[str, object] = {
        "kind": PositionKind.VEHICLE,
        "identifier": "ABC1234",
        "insert_value": "ABC1234",
        "observed_at": datetime(2025, 11, 7, 15, 38, 12),
        "latitude": -23.5,
        "longitude": -46.6,
    }
    values.update(overrides)
    return CanonicalPosition(**values)


def test_canonical_position_defaults() -> None:
    position = _position(speed=None, location_label="")
    assert position.speed == 0.0
    assert position.ignition_on is False
    assert position.location_label == DEFAULT_LOCATION_LABEL


def test_canonical_position_strips_identifier() -> None:
    assert _position(identifier="  ABC1234 ").identifier == "ABC1234"


def test_canonical_position_rejects_blank_identifier() -> None:
    with pytest.raises(ValidationError):
        _position(identifier="   ")


def test_canonical_position_rejects_non_finite_coordinates() -> None:
    with pytest.raises(ValidationError):
        _position(latitude=float("inf"))


def test_canonical_position_is_frozen() -> None:
    position = _position()
    with pytest.raises(ValidationError):
        position.speed = 10  # type: ignore[misc]


def test_pending_batch_requires_positions() -> None:
    with pytest.raises(ValidationError):
        PendingBatch(source="Atualcargo", positions=(), fetched_at=datetime.now(UTC))


def test_pending_batch_partitions_by_kind() -> None:
    batch = PendingBatch(
        source="Atualcargo",
        positions=(_position(), _position(kind=PositionKind.TAG, identifier="123")),
        fetched_at=datetime.now(UTC),
    )
    assert [p.identifier for p in batch.of_kind(PositionKind.TAG)] == ["123"]
    assert [p.identifier for p in batch.of_kind(PositionKind.VEHICLE)] == ["ABC1234"]


def test_provider_record_drops_placeholders_and_keeps_raw() -> None:
    payload = {"plate": "ABC1234", "speed": "--", "proximity": "", "latlong": {"latitude": "-23.5", "longitude": -46.6}}
    record = AtualcargoPosition.model_validate(payload)

    assert record.speed is None
    assert record.proximity is None
    assert record.latlong is not None
    assert record.latlong.latitude == -23.5
    assert record.raw == payload


def test_sitrax_record_reads_uppercase_serial_key() -> None:
    record = SitraxPosition.model_validate({"cveiPlaca": 998877, "cequSN": "SN-1"})
    assert record.cvei_placa == "998877"
    assert record.cequ_sn == "SN-1"
