"""Data models for provider payloads, canonical positions and ERP lookups."""

from trackhub.models._base import ProviderRecord
from trackhub.models.erp import EntityMapping, ReconcileResult
from trackhub.models.position import CanonicalPosition, PendingBatch, PositionKind
from trackhub.models.providers import (
    AtualcargoPosition,
    PositronPosition,
    SitraxPosition,
)

__all__ = [
    "AtualcargoPosition",
    "CanonicalPosition",
    "EntityMapping",
    "PendingBatch",
    "PositionKind",
    "PositronPosition",
    "ProviderRecord",
    "ReconcileResult",
    "SitraxPosition",
]
