"""SQL and insert-row builders for the Sankhya tracking tables.

Vehicles live in ``TGFVEI`` (key ``CODVEICULO``) with history in
``AD_LOCATCAR``; tags live in ``AD_CADISCA`` (key ``SEQUENCIA``) with
history in ``AD_LOCATISC``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from trackhub._constants import (
    SANKHYA_INSERT_DATE_FORMAT,
    TAG_CATALOG_TABLE,
    TAG_HISTORY_ENTITY,
    VEHICLE_CATALOG_TABLE,
    VEHICLE_HISTORY_ENTITY,
)
from trackhub.models.position import CanonicalPosition

VEHICLE_HISTORY_FIELDS: tuple[str, ...] = (
    "CODVEICULO",
    "PLACA",
    "DATHOR",
    "LATITUDE",
    "LONGITUDE",
    "VELOCIDADE",
    "IGNICAO",
    "LOCAL",
)
TAG_HISTORY_FIELDS: tuple[str, ...] = (
    "SEQUENCIA",
    "PLACA",
    "DATHOR",
    "LATITUDE",
    "LONGITUDE",
    "VELOCIDADE",
    "IGNICAO",
    "LOCAL",
)


def quote(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _in_list(values: Iterable[str]) -> str:
    return ", ".join(quote(value) for value in sorted(set(values)))


def vehicle_codes_sql(plates: Iterable[str]) -> str | None:
    """Look up ``CODVEICULO`` by plate. ``None`` when there is nothing to ask."""
    plates = [plate for plate in plates if plate]
    if not plates:
        return None
    return f"SELECT CODVEICULO, PLACA FROM {VEHICLE_CATALOG_TABLE} WHERE PLACA IN ({_in_list(plates)})"


def tag_codes_sql(numbers: Iterable[str], fabricante_id: str) -> str | None:
    """Look up ``SEQUENCIA`` by tag number, restricted to one manufacturer."""
    numbers = [number for number in numbers if number]
    if not numbers:
        return None
    return (
        f"SELECT SEQUENCIA, NUMISCA FROM {TAG_CATALOG_TABLE} "
        f"WHERE NUMISCA IN ({_in_list(numbers)}) AND CODFAB = {quote(fabricante_id)}"
    )


def _last_history_sql(entity: str, key: str, codes: Iterable[str]) -> str | None:
    codes = [code for code in codes if code]
    if not codes:
        return None
    return (
        f"SELECT {key}, TO_CHAR(MAX(DATHOR), 'DDMMYYYY HH24:MI:SS') AS DATHOR FROM {entity} "
        f"WHERE {key} IN ({_in_list(codes)}) GROUP BY {key}"
    )


def last_vehicle_history_sql(codes: Iterable[str]) -> str | None:
    return _last_history_sql(VEHICLE_HISTORY_ENTITY, "CODVEICULO", codes)


def last_tag_history_sql(codes: Iterable[str]) -> str | None:
    return _last_history_sql(TAG_HISTORY_ENTITY, "SEQUENCIA", codes)


def history_row(code: str, position: CanonicalPosition) -> list[Any]:
    """One ``DatasetSP.save`` row, in ``*_HISTORY_FIELDS`` order."""
    return [
        code,
        position.insert_value,
        position.observed_at.strftime(SANKHYA_INSERT_DATE_FORMAT),
        position.latitude,
        position.longitude,
        position.speed,
        "S" if position.ignition_on else "N",
        position.location_label,
    ]


def history_rows(entries: Sequence[tuple[str, CanonicalPosition]]) -> list[list[Any]]:
    return [history_row(code, position) for code, position in entries]
