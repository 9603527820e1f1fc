"""Window clamping and daily gap filling for trend series."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

MIN_RANGE_DAYS = 7
MAX_RANGE_DAYS = 365
DEFAULT_RANGE_DAYS = 90

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class TrendPoint:
    date: str
    value: int


def clamp_range(range_days: Any) -> int:
    """Parse a window length and clamp it to [7, 365]; unparseable input yields 90.

    Strings are read up to the first non-digit, so ``"30d"`` means 30.
    """

    if isinstance(range_days, bool):
        return DEFAULT_RANGE_DAYS
    if isinstance(range_days, int):
        parsed = range_days
    elif isinstance(range_days, float):
        if not math.isfinite(range_days):
            return DEFAULT_RANGE_DAYS
        parsed = int(range_days)
    else:
        match = _LEADING_INT.match(str(range_days)) if range_days is not None else None
        if match is None:
            return DEFAULT_RANGE_DAYS
        parsed = int(match.group(1))
    return max(MIN_RANGE_DAYS, min(parsed, MAX_RANGE_DAYS))


def window_start(range_days: int, now: datetime | None = None) -> datetime:
    """Return ``now`` minus ``range_days`` whole days, in UTC."""

    current = now or datetime.now(timezone.utc)
    return current - timedelta(days=range_days)


def to_utc_date(value: date | datetime | str) -> date:
    """Normalise a day bucket returned by the store to its UTC calendar date."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return date.fromisoformat(text[:10])
    return to_utc_date(parsed)


def fill_daily_gaps(
    points: Iterable[tuple[Any, int]],
    window_days: int,
    today: date | None = None,
) -> list[TrendPoint]:
    """Expand sparse ``(day, count)`` pairs into one point per day ending today."""

    counts: dict[date, int] = {}
    for day, value in points:
        counts[to_utc_date(day)] = int(value or 0)
    end = today or datetime.now(timezone.utc).date()
    series: list[TrendPoint] = []
    for offset in range(window_days - 1, -1, -1):
        day = end - timedelta(days=offset)
        series.append(TrendPoint(date=day.isoformat(), value=counts.get(day, 0)))
    return series


__all__ = [
    "DEFAULT_RANGE_DAYS",
    "MAX_RANGE_DAYS",
    "MIN_RANGE_DAYS",
    "TrendPoint",
    "clamp_range",
    "fill_daily_gaps",
    "to_utc_date",
    "window_start",
]
