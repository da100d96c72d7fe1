"""Normalization helpers.

Centralizes defensive parsing of provider values and timestamps.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        # Some providers send Brazilian decimals ("-23,5501").
        value = value.strip().replace(",", ".")
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text if text else None


def parse_local_datetime(value: Any, fmt: str) -> datetime | None:
    """Parse a provider timestamp already expressed in local time.

    Returns ``None`` for missing or malformed values.
    """
    text = safe_str(value)
    if text is None:
        return None
    try:
        return datetime.strptime(text, fmt)
    except ValueError:
        return None


def parse_iso_to_local(value: Any, time_zone: str) -> datetime | None:
    """Parse an ISO-8601 timestamp and convert it to naive local time.

    Offset-less values are taken as UTC.
    """
    text = safe_str(value)
    if text is None:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo("UTC"))
    return parsed.astimezone(ZoneInfo(time_zone)).replace(tzinfo=None)


def parse_flag(value: Any, truthy: frozenset[str]) -> bool:
    """Interpret provider ignition-style flags (``"ON"``, ``"S"``, ``1``, ``True``)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    text = safe_str(value)
    return text is not None and text.upper() in truthy
