"""Deterministic dedup and expiry policy.

This module contains *no* payload parsing beyond the ERP timestamp string.
Provider payloads are normalized at the ingestion boundary.
"""

from __future__ import annotations

from datetime import datetime

from trackhub._constants import SANKHYA_INSERT_DATE_FORMAT, SANKHYA_QUERY_DATE_FORMAT

_LAST_RECORDED_FORMATS: tuple[str, ...] = (SANKHYA_QUERY_DATE_FORMAT, SANKHYA_INSERT_DATE_FORMAT)


def parse_last_recorded(value: str | None) -> datetime | None:
    """Parse a last-recorded timestamp as returned by an ERP query.

    Returns ``None`` when the value is empty or in no known format.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for fmt in _LAST_RECORDED_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def is_newer(observed_at: datetime | None, last_recorded: str | None) -> bool:
    """Decide whether a position should be written.

    Policy:
    - No valid incoming timestamp: never write.
    - No last-recorded timestamp, or one we cannot parse: write.
    - Otherwise write only when strictly newer (equal is a duplicate).
    """
    if observed_at is None:
        return False
    last = parse_last_recorded(last_recorded)
    if last is None:
        return True
    return observed_at > last


def is_expired(now: datetime, expires_at: datetime) -> bool:
    return now >= expires_at
