"""Tests for interval overlap, named ranges and primary windows."""

from __future__ import annotations

import datetime

import pytest

from conftest import make_job
from dealerops.scheduling.models import ScheduleWindow
from dealerops.scheduling.ranges import (
    CustomRange,
    Interval,
    intervals_overlap,
    is_within_range,
    primary_window,
    promise_day,
    resolve_date_range,
    resolve_window,
)

UTC = datetime.timezone.utc
NOW = "2025-12-31T12:00:00Z"


def utc(*args) -> datetime.datetime:
    return datetime.datetime(*args, tzinfo=UTC)


class TestIntervalsOverlap:
    """Tests for intervals_overlap."""

    def test_symmetric(self):
        a = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 11))
        b = Interval(utc(2026, 1, 1, 10), utc(2026, 1, 1, 12))
        assert intervals_overlap(a, b) is True
        assert intervals_overlap(b, a) is True

    def test_touching_intervals_do_not_overlap(self):
        """Half-open: [9, 10) and [10, 11) share no instant."""
        a = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 10))
        b = Interval(utc(2026, 1, 1, 10), utc(2026, 1, 1, 11))
        assert intervals_overlap(a, b) is False
        assert intervals_overlap(b, a) is False

    def test_point_at_start_is_inside(self):
        point = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 9))
        window = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 10))
        assert intervals_overlap(point, window) is True

    def test_point_at_end_is_outside(self):
        point = Interval(utc(2026, 1, 1, 10), utc(2026, 1, 1, 10))
        window = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 10))
        assert intervals_overlap(window, point) is False

    def test_equal_points(self):
        point = Interval(utc(2026, 1, 1, 9), utc(2026, 1, 1, 9))
        assert intervals_overlap(point, point) is True


class TestIsWithinRange:
    """Tests for is_within_range."""

    def test_window_spanning_midnight_overlaps_today(self):
        """23:30 to 01:30 New York time overlaps the later day."""
        window = ScheduleWindow("2025-12-31T04:30:00Z", "2025-12-31T06:30:00Z")
        today = resolve_date_range("today", NOW)
        assert today is not None
        assert is_within_range(window, today.start, today.end) is True

    def test_window_on_prior_day_does_not_overlap(self):
        window = ScheduleWindow("2025-12-30T14:00:00Z", "2025-12-30T16:00:00Z")
        today = resolve_date_range("today", NOW)
        assert is_within_range(window, today.start, today.end) is False

    def test_start_only_window_is_a_point(self):
        window = ScheduleWindow("2025-12-31T15:00:00Z", None)
        assert is_within_range(window, "2025-12-31T15:00:00Z", "2025-12-31T16:00:00Z") is True
        assert is_within_range(window, "2025-12-31T14:00:00Z", "2025-12-31T15:00:00Z") is False

    def test_empty_window_matches_nothing(self):
        assert is_within_range(ScheduleWindow(), "2025-12-31", "2026-01-01") is False

    def test_date_only_start_covers_whole_day(self):
        window = ScheduleWindow("2025-12-31", None)
        assert is_within_range(window, "2025-12-31T22:00:00Z", "2025-12-31T23:00:00Z") is True


class TestResolveWindow:
    def test_end_before_start_collapses_to_start(self):
        interval = resolve_window(ScheduleWindow("2026-01-01T10:00:00Z", "2026-01-01T09:00:00Z"))
        assert interval == Interval(utc(2026, 1, 1, 10), utc(2026, 1, 1, 10))

    def test_end_only(self):
        interval = resolve_window(ScheduleWindow(None, "2026-01-01T09:00:00Z"))
        assert interval is not None and interval.is_point

    def test_midnight_utc_end_of_timed_window_is_an_instant(self):
        """5-7 PM New York time stored as 22:00Z to 00:00Z ends at 00:00Z."""
        interval = resolve_window(ScheduleWindow("2026-01-14T22:00:00Z", "2026-01-15T00:00:00Z"))
        assert interval == Interval(utc(2026, 1, 14, 22), utc(2026, 1, 15))

    def test_date_only_bounds_cover_whole_days(self):
        interval = resolve_window(ScheduleWindow("2026-01-14", "2026-01-15T00:00:00Z"))
        assert interval == Interval(utc(2026, 1, 14, 5), utc(2026, 1, 16, 5))

    def test_evening_job_is_not_on_the_next_day(self):
        window = ScheduleWindow("2026-01-14T22:00:00Z", "2026-01-15T00:00:00Z")
        today = resolve_date_range("today", "2026-01-15T16:00:00Z")
        assert is_within_range(window, today.start, today.end) is False


class TestResolveDateRange:
    """Tests for resolve_date_range."""

    def test_today_in_reference_zone(self):
        window = resolve_date_range("today", NOW)
        assert window == Interval(
            datetime.datetime(2025, 12, 31, 5, tzinfo=UTC),
            datetime.datetime(2026, 1, 1, 5, tzinfo=UTC),
        )

    def test_today_before_local_midnight(self):
        """02:00Z on Jan 1 is still Dec 31 in New York."""
        window = resolve_date_range("today", "2026-01-01T02:00:00Z")
        assert window.start.astimezone(UTC) == utc(2025, 12, 31, 5)

    def test_today_from_midnight_utc_now(self):
        """00:00Z on Jan 15 is 7 PM on Jan 14 in New York."""
        window = resolve_date_range("today", "2026-01-15T00:00:00Z")
        assert window.start == utc(2026, 1, 14, 5)

    @pytest.mark.parametrize(
        ("name", "days"),
        [("next3days", 3), ("week", 7), ("next7days", 7), ("month", 30)],
    )
    def test_named_spans(self, name, days):
        window = resolve_date_range(name, NOW)
        assert (window.end.date() - window.start.date()).days == days

    @pytest.mark.parametrize("name", [None, "all", "ALL", "fortnight", ""])
    def test_no_filtering(self, name):
        assert resolve_date_range(name, NOW) is None

    def test_named_range_without_now(self):
        assert resolve_date_range("today", None) is None

    def test_custom_range(self):
        window = resolve_date_range(CustomRange("2026-01-01T00:00:00Z", "2026-01-02T00:00:00Z"), None)
        assert window == Interval(utc(2026, 1, 1), utc(2026, 1, 2))

    def test_tuple_is_a_custom_range(self):
        window = resolve_date_range(("2026-01-01T00:00:00Z", "2026-01-02T00:00:00Z"), None)
        assert window == Interval(utc(2026, 1, 1), utc(2026, 1, 2))

    def test_custom_range_of_plain_dates_uses_reference_days(self):
        window = resolve_date_range(CustomRange("2026-01-01", "2026-01-02"), None)
        assert window == Interval(utc(2026, 1, 1, 5), utc(2026, 1, 2, 5))

    def test_inverted_custom_range_is_ignored(self):
        assert resolve_date_range(CustomRange("2026-01-02", "2026-01-01"), NOW) is None


class TestPrimaryWindow:
    """Tests for primary_window and promise_day."""

    def test_earliest_start_and_latest_end_across_parts(self):
        job = make_job(
            scheduled_start="2026-01-02T15:00:00Z",
            scheduled_end="2026-01-02T16:00:00Z",
            parts=[
                {"scheduled_start": "2026-01-02T13:00:00Z", "scheduled_end": "2026-01-02T14:00:00Z"},
                {"scheduled_start": "2026-01-02T17:00:00Z", "scheduled_end": "2026-01-02T19:00:00Z"},
            ],
        )
        window = primary_window(job)
        assert window.start == "2026-01-02T13:00:00Z"
        assert window.end == "2026-01-02T19:00:00Z"

    def test_part_only_schedule(self):
        job = make_job(parts=[{"scheduled_start": "2026-01-02T13:00:00Z"}])
        assert primary_window(job).start == "2026-01-02T13:00:00Z"

    def test_no_schedule(self):
        assert primary_window(make_job()).start is None

    def test_unparseable_start_falls_back_to_end(self):
        job = make_job(scheduled_start="not-a-date", scheduled_end="2025-12-31T15:00:00Z")
        window = primary_window(job)
        assert window.start == "2025-12-31T15:00:00Z"
        assert window.end == "2025-12-31T15:00:00Z"

    def test_promise_day_prefers_job_level(self):
        job = make_job(promised_date="2026-01-05", parts=[{"promised_date": "2026-01-03"}])
        assert promise_day(job) == datetime.date(2026, 1, 5)

    def test_promise_day_falls_back_to_earliest_part(self):
        job = make_job(parts=[{"promised_date": "2026-01-07"}, {"promised_date": "2026-01-03"}])
        assert promise_day(job) == datetime.date(2026, 1, 3)
