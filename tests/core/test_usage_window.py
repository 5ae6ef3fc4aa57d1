"""Tests for resolve_window and minutes_billed — pure window math."""

from datetime import date, datetime, timedelta, timezone

from callstore.core.usage_window import DEFAULT_WINDOW, minutes_billed, resolve_window

NOW = datetime(2026, 3, 15, 12, 30, tzinfo=timezone.utc)


def test_both_dates_cover_whole_days_inclusive():
    start, end = resolve_window(date(2026, 3, 1), date(2026, 3, 2), NOW)
    assert start == datetime(2026, 3, 1, 0, 0, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, 23, 59, 59, 999_000, tzinfo=timezone.utc)


def test_single_day_window():
    start, end = resolve_window(date(2026, 3, 1), date(2026, 3, 1), NOW)
    assert end - start == timedelta(hours=24) - timedelta(milliseconds=1)


def test_missing_dates_default_to_last_24_hours():
    start, end = resolve_window(None, None, NOW)
    assert end == NOW
    assert start == NOW - timedelta(hours=24)
    assert DEFAULT_WINDOW == timedelta(hours=24)


def test_only_one_date_falls_back_to_default_window():
    assert resolve_window(date(2026, 1, 1), None, NOW) == (NOW - DEFAULT_WINDOW, NOW)
    assert resolve_window(None, date(2026, 1, 1), NOW) == (NOW - DEFAULT_WINDOW, NOW)


def test_custom_default_span():
    start, _ = resolve_window(None, None, NOW, timedelta(hours=6))
    assert start == NOW - timedelta(hours=6)


def test_minutes_round_up():
    assert minutes_billed(0) == 0
    assert minutes_billed(1) == 1
    assert minutes_billed(60) == 1
    assert minutes_billed(75) == 2
    assert minutes_billed(120.5) == 3
