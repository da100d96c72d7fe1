"""Raw position records as returned by each tracking provider."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BeforeValidator, Field, field_validator

from trackhub.ingestion.normalize import safe_float, safe_str
from trackhub.models._base import ProviderRecord

LooseFloat = Annotated[float | None, BeforeValidator(safe_float)]
"""Float that accepts numeric strings and turns garbage into ``None``."""

LooseStr = Annotated[str | None, BeforeValidator(safe_str)]
"""String that accepts numbers (plates and serials sometimes arrive as ints)."""


# ------------------------------------------------------------------
# Atualcargo
# ------------------------------------------------------------------


class AtualcargoLatLong(ProviderRecord):
    latitude: LooseFloat = None
    longitude: LooseFloat = None


class AtualcargoAddress(ProviderRecord):
    street: LooseStr = None


class AtualcargoPosition(ProviderRecord):
    """Item of ``GET /api/positions/v1/last``.

    Plates prefixed with ``ISCA`` are tracking tags, everything else is a
    vehicle.
    """

    plate: LooseStr = None
    date: LooseStr = None
    latlong: AtualcargoLatLong | None = None
    speed: LooseFloat = None
    ignition: LooseStr = None
    proximity: LooseStr = None
    address: AtualcargoAddress | None = None

    @field_validator("address", mode="before")
    @classmethod
    def _address_as_text(cls, value: Any) -> Any:
        # Some accounts return the address as a plain string.
        if isinstance(value, str):
            return {"street": value}
        return value


# ------------------------------------------------------------------
# Sitrax
# ------------------------------------------------------------------


class SitraxPosition(ProviderRecord):
    """Item of ``POST /ultimaposicao`` → ``posicoes``. Every record is a tag."""

    cvei_placa: LooseStr = None
    """Tag number, looked up in the ERP tag catalog."""
    cequ_sn: LooseStr = Field(default=None, alias="cequSN")
    """Equipment serial, written to the history row."""
    llpo_data_status: LooseStr = None
    llpo_latitude: LooseFloat = None
    llpo_longitude: LooseFloat = None
    llpo_velocidade: LooseFloat = None
    llpo_ign: LooseStr = None
    trua_nome: LooseStr = None
    tmun_nome: LooseStr = None
    test_abrev: LooseStr = None


# ------------------------------------------------------------------
# Positron
# ------------------------------------------------------------------


class PositronPosition(ProviderRecord):
    """Item of ``GET position/latest?withAddress=true``. Every record is a tag."""

    serial_number: LooseStr = None
    date: LooseStr = None
    latitude: LooseFloat = None
    longitude: LooseFloat = None
    speed: LooseFloat = None
    ignition: Any = None
    address: Any = None
