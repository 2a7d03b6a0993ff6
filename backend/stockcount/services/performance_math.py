"""Pure helpers for worker performance: elapsed time, efficiency, ranking.

Rounding is half-up (``0.125 -> 0.13``), matching what dashboards have always
shown; Python's built-in ``round`` would round half to even.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence

_CENTS = Decimal("0.01")


def as_utc(dt: datetime | None) -> datetime | None:
    """Normalize naive (SQLite) and aware datetimes to aware UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def elapsed_minutes(start_time: datetime | None, end_time: datetime | None) -> int | None:
    """Whole minutes between start and end, or None while the session is open."""
    start = as_utc(start_time)
    end = as_utc(end_time)
    if start is None or end is None:
        return None
    seconds = Decimal(str((end - start).total_seconds()))
    minutes = (seconds / Decimal(60)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(int(minutes), 0)


def compute_efficiency(bins_counted: int, minutes_taken: int) -> float:
    """Bins per hour, two decimals; 0 when no time has been recorded."""
    if not minutes_taken or minutes_taken <= 0:
        return 0.0
    per_hour = Decimal(int(bins_counted)) * Decimal(60) / Decimal(int(minutes_taken))
    return float(per_hour.quantize(_CENTS, rounding=ROUND_HALF_UP))


def rank_order(rows: Iterable[Any]) -> list[Any]:
    """Efficiency descending; username breaks ties so the order is deterministic."""
    return sorted(rows, key=lambda row: (-float(row.efficiency or 0), row.username))


def assign_rankings(rows: Sequence[Any]) -> list[Any]:
    """Set ``ranking`` to the 1-based position in ``rows`` (already ordered)."""
    for position, row in enumerate(rows, start=1):
        row.ranking = position
    return list(rows)
