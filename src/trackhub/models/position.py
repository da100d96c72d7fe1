"""Canonical position record and the pending batch."""

from __future__ import annotations

import enum
import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trackhub._constants import DEFAULT_LOCATION_LABEL


class PositionKind(enum.StrEnum):
    """Which ERP catalog a position belongs to."""

    VEHICLE = "vehicle"
    TAG = "tag"


class CanonicalPosition(BaseModel):
    """One location report, normalized across providers.

    Parameters
    ----------
    kind : PositionKind
        Vehicle or tracking tag.
    identifier : str
        Key used to look the entity up in the ERP catalog (plate or tag
        number).
    insert_value : str
        Value written to the ERP history row's ``PLACA`` column.
    observed_at : datetime
        Naive datetime in the ERP's local time zone.
    latitude, longitude : float
        Finite WGS84 coordinates.
    speed : float
        km/h, ``0`` when the provider did not send one.
    ignition_on : bool
        Engine / device ignition state.
    location_label : str
        Human readable address.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: PositionKind
    identifier: str = Field(min_length=1)
    insert_value: str
    observed_at: datetime
    latitude: float
    longitude: float
    speed: float = 0.0
    ignition_on: bool = False
    location_label: str = DEFAULT_LOCATION_LABEL

    @field_validator("identifier", "insert_value", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate must be finite")
        return value

    @field_validator("speed", mode="before")
    @classmethod
    def _speed_default(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("location_label", mode="before")
    @classmethod
    def _label_default(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_LOCATION_LABEL
        return value


class PendingBatch(BaseModel):
    """Positions fetched from one source and not yet committed to the ERP."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str
    positions: tuple[CanonicalPosition, ...] = Field(min_length=1)
    fetched_at: datetime

    def of_kind(self, kind: PositionKind) -> list[CanonicalPosition]:
        return [position for position in self.positions if position.kind is kind]
