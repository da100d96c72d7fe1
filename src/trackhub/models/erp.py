"""ERP-side lookup and result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class EntityMapping(BaseModel):
    """Identifier → ERP entity code, plus each entity's last recorded timestamp.

    Built inside every reconciliation and discarded afterwards.
    """

    model_config = ConfigDict(frozen=True)

    codes: dict[str, str] = Field(default_factory=dict)
    last_recorded: dict[str, str | None] = Field(default_factory=dict)

    def code_for(self, identifier: str) -> str | None:
        return self.codes.get(identifier)


class ReconcileResult(BaseModel):
    """Counters for one reconciliation."""

    model_config = ConfigDict(frozen=True)

    vehicles_inserted: int = 0
    tags_inserted: int = 0
    stale: int = 0
    unmapped: int = 0
    duplicates: int = 0

    @property
    def inserted(self) -> int:
        return self.vehicles_inserted + self.tags_inserted
