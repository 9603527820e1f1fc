"""Window clamp and gap-filling tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from crm_dashboard.services.trend import clamp_range, fill_daily_gaps, to_utc_date, window_start


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (1, 7),
        (-30, 7),
        (7, 7),
        (30, 30),
        (365, 365),
        (1000, 365),
        ("45", 45),
        ("30d", 30),
        (" 14 ", 14),
        ("abc", 90),
        ("", 90),
        (None, 90),
        (float("nan"), 90),
        (12.9, 12),
    ],
)
def test_clamp_range(raw, expected):
    assert clamp_range(raw) == expected


def test_clamp_range_is_idempotent():
    for raw in (-5, 3, 7, 100, 365, 9999, "x"):
        once = clamp_range(raw)
        assert clamp_range(once) == once


def test_window_start_uses_whole_days():
    now = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)
    assert window_start(30, now) == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_fill_daily_gaps_empty_input_is_all_zero():
    today = date(2024, 9, 10)
    series = fill_daily_gaps([], 7, today=today)
    assert len(series) == 7
    assert [p.value for p in series] == [0] * 7
    assert series[0].date == "2024-09-04"
    assert series[-1].date == "2024-09-10"


@pytest.mark.parametrize("window", [7, 30, 90, 365])
def test_fill_daily_gaps_is_dense_and_ascending(window):
    today = date(2024, 2, 29)
    sparse = [(today - timedelta(days=3), 4), (today - timedelta(days=window + 10), 9)]
    series = fill_daily_gaps(sparse, window, today=today)

    assert len(series) == window
    days = [date.fromisoformat(p.date) for p in series]
    assert days[-1] == today
    assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))
    assert sum(p.value for p in series) == 4


def test_fill_daily_gaps_normalises_store_values():
    today = date(2024, 9, 10)
    sparse = [
        ("2024-09-08", 2),
        (datetime(2024, 9, 9, 0, 0), 3),
        # 23:30 at UTC-02:00 is already the 10th in UTC.
        (datetime(2024, 9, 9, 23, 30, tzinfo=timezone(timedelta(hours=-2))), 5),
    ]
    series = {p.date: p.value for p in fill_daily_gaps(sparse, 7, today=today)}
    assert series["2024-09-08"] == 2
    assert series["2024-09-09"] == 3
    assert series["2024-09-10"] == 5
    assert series["2024-09-07"] == 0


def test_to_utc_date_accepts_timestamp_strings():
    assert to_utc_date("2024-09-08 00:00:00") == date(2024, 9, 8)
    assert to_utc_date("2024-09-08T22:00:00-05:00") == date(2024, 9, 9)
