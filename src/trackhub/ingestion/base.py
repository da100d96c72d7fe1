"""Provider adapter interface and shared mapping loop."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from trackhub.models._base import ProviderRecord
from trackhub.models.position import CanonicalPosition
from trackhub.session import SourceSession

_logger = logging.getLogger(__name__)

TRecord = TypeVar("TRecord", bound=ProviderRecord)


class ProviderAdapter(Protocol):
    """Structural interface every tracking provider implements."""

    name: str
    requires_login: bool

    async def login(self) -> SourceSession:
        ...

    async def fetch_positions(self, token: str | None) -> list[dict[str, Any]]:
        ...

    def map_to_canonical(self, raw: Sequence[Mapping[str, Any]]) -> list[CanonicalPosition]:
        ...


def map_records(
    source: str,
    raw: Sequence[Mapping[str, Any]],
    model: type[TRecord],
    convert: Callable[[TRecord], CanonicalPosition | None],
) -> list[CanonicalPosition]:
    """Validate and convert raw records, dropping the invalid ones.

    *convert* returns ``None`` for records missing an identifier, a valid
    timestamp or coordinates.
    """
    mapped: list[CanonicalPosition] = []
    dropped = 0
    for item in raw:
        try:
            record = model.model_validate(dict(item))
            position = convert(record)
        except (ValidationError, ValueError) as exc:
            _logger.debug("[%s] record failed validation: %s", source, exc)
            position = None
        if position is None:
            dropped += 1
            _logger.warning("[%s] Dropped invalid record: %s", source, _describe(item))
            continue
        mapped.append(position)

    _logger.info("[%s] Mapped %d positions (%d dropped)", source, len(mapped), dropped)
    return mapped


def _describe(item: Mapping[str, Any]) -> str:
    for key in ("plate", "cveiPlaca", "serialNumber"):
        if item.get(key):
            return f"{key}={item[key]}"
    return "<no identifier>"
