"""Pure selection rules for a dispatch pass: what is due, what has expired."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, MutableMapping
    from datetime import datetime, timedelta

    from src.scheduler.models import ScheduleRecord


def find_due(records: Iterable[ScheduleRecord], now: datetime) -> list[ScheduleRecord]:
    """Return copies of the pending records whose due time is at or before *now*.

    Copies let the caller send without holding the state lock; the live
    records are only touched again when the outcome is applied.
    """
    return [replace(r) for r in records if r.is_due(now)]


def sweep_expired(
    records: MutableMapping[str, ScheduleRecord],
    now: datetime,
    retention: timedelta,
) -> list[ScheduleRecord]:
    """Remove sent records whose due time is older than *retention*.

    Pending records are never removed, however old.  Returns what was removed.
    """
    cutoff = now - retention
    expired = [r for r in records.values() if r.is_sent and r.due_at < cutoff]
    for record in expired:
        del records[record.id]
    return expired
