"""Newer-than reconciliation of a pending batch against the ERP."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from trackhub._constants import TAG_HISTORY_ENTITY, VEHICLE_HISTORY_ENTITY
from trackhub.erp import queries
from trackhub.erp.client import ErpGateway
from trackhub.ingestion.normalize import safe_str
from trackhub.models.erp import EntityMapping, ReconcileResult
from trackhub.models.position import CanonicalPosition, PendingBatch, PositionKind
from trackhub.state.policy import is_newer

_logger = logging.getLogger(__name__)


def _index(rows: Sequence[dict[str, Any]], key_column: str, value_column: str) -> dict[str, str | None]:
    index: dict[str, str | None] = {}
    for row in rows:
        key = safe_str(row.get(key_column))
        if key is None:
            continue
        index[key] = safe_str(row.get(value_column))
    return index


class ReconciliationEngine:
    """Decides which positions of a batch are new and writes them.

    Every ERP call runs sequentially: the Sankhya query service rejects
    concurrent requests on one session. Entity mappings are resolved on
    every call and never cached.
    """

    def __init__(self, gateway: ErpGateway) -> None:
        self._gateway = gateway

    async def reconcile(
        self,
        batch: PendingBatch,
        *,
        source: str,
        erp_url: str,
        fabricante_id: str,
    ) -> ReconcileResult:
        """Insert the positions of *batch* that are newer than the ERP's.

        Raises
        ------
        ErpAuthError, ErpTransportError
            Propagated unchanged; nothing is retried here and *batch* is
            left as it was.
        """
        vehicles = batch.of_kind(PositionKind.VEHICLE)
        tags = batch.of_kind(PositionKind.TAG)
        _logger.info("[%s] Reconciling %d vehicles and %d tags against %s", source, len(vehicles), len(tags), erp_url)

        vehicle_map = await self._resolve(
            queries.vehicle_codes_sql(p.identifier for p in vehicles),
            key_column="PLACA",
            code_column="CODVEICULO",
            erp_url=erp_url,
        )
        tag_map = await self._resolve(
            queries.tag_codes_sql((p.identifier for p in tags), fabricante_id),
            key_column="NUMISCA",
            code_column="SEQUENCIA",
            erp_url=erp_url,
        )
        vehicle_map = await self._with_history(
            vehicle_map,
            queries.last_vehicle_history_sql(vehicle_map.codes.values()),
            code_column="CODVEICULO",
            erp_url=erp_url,
        )
        tag_map = await self._with_history(
            tag_map,
            queries.last_tag_history_sql(tag_map.codes.values()),
            code_column="SEQUENCIA",
            erp_url=erp_url,
        )
        _logger.info("[%s] %d vehicles and %d tags mapped", source, len(vehicle_map.codes), len(tag_map.codes))

        new_vehicles, vehicle_counts = self._select_new(vehicles, vehicle_map, source=source, kind="vehicle")
        new_tags, tag_counts = self._select_new(tags, tag_map, source=source, kind="tag")
        _logger.info("[%s] %d new vehicle and %d new tag positions to insert", source, len(new_vehicles), len(new_tags))

        if new_vehicles:
            await self._gateway.insert(
                VEHICLE_HISTORY_ENTITY,
                queries.VEHICLE_HISTORY_FIELDS,
                queries.history_rows(new_vehicles),
                erp_url,
            )
        if new_tags:
            await self._gateway.insert(
                TAG_HISTORY_ENTITY,
                queries.TAG_HISTORY_FIELDS,
                queries.history_rows(new_tags),
                erp_url,
            )

        return ReconcileResult(
            vehicles_inserted=len(new_vehicles),
            tags_inserted=len(new_tags),
            stale=vehicle_counts["stale"] + tag_counts["stale"],
            unmapped=vehicle_counts["unmapped"] + tag_counts["unmapped"],
            duplicates=vehicle_counts["duplicates"] + tag_counts["duplicates"],
        )

    async def _resolve(self, sql: str | None, *, key_column: str, code_column: str, erp_url: str) -> EntityMapping:
        if sql is None:
            return EntityMapping()
        rows = await self._gateway.query(sql, erp_url)
        codes = {key: code for key, code in _index(rows, key_column, code_column).items() if code is not None}
        return EntityMapping(codes=codes)

    async def _with_history(
        self,
        mapping: EntityMapping,
        sql: str | None,
        *,
        code_column: str,
        erp_url: str,
    ) -> EntityMapping:
        if sql is None:
            return mapping
        rows = await self._gateway.query(sql, erp_url)
        return EntityMapping(codes=mapping.codes, last_recorded=_index(rows, code_column, "DATHOR"))

    @staticmethod
    def _select_new(
        positions: Sequence[CanonicalPosition],
        mapping: EntityMapping,
        *,
        source: str,
        kind: str,
    ) -> tuple[list[tuple[str, CanonicalPosition]], dict[str, int]]:
        selected: list[tuple[str, CanonicalPosition]] = []
        seen: set[tuple[str, Any]] = set()
        counts = {"stale": 0, "unmapped": 0, "duplicates": 0}
        unmapped: set[str] = set()

        for position in positions:
            code = mapping.code_for(position.identifier)
            if code is None:
                counts["unmapped"] += 1
                unmapped.add(position.identifier)
                _logger.debug("[%s] %s %s is not registered in the ERP, skipped", source, kind, position.identifier)
                continue
            if not is_newer(position.observed_at, mapping.last_recorded.get(code)):
                counts["stale"] += 1
                continue
            key = (code, position.observed_at)
            if key in seen:
                counts["duplicates"] += 1
                continue
            seen.add(key)
            selected.append((code, position))

        if unmapped:
            _logger.info("[%s] %d %s identifier(s) not registered in the ERP", source, len(unmapped), kind)
        return selected, counts
