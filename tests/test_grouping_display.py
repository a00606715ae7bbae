"""Tests for agenda grouping, location derivation and schedule labels."""

from __future__ import annotations

from conftest import make_job
from dealerops.scheduling.dates import UNSCHEDULED
from dealerops.scheduling.display import NO_SCHEDULE, schedule_display
from dealerops.scheduling.grouping import (
    UNASSIGNED,
    day_key_for,
    derive_location,
    group_by_day,
    group_by_location,
    group_by_vendor,
)
from dealerops.scheduling.models import LocationType


def ids(jobs):
    return [job.id for job in jobs]


class TestDeriveLocation:
    def test_from_part_flags(self):
        assert derive_location(make_job(parts=[{"is_off_site": True}])) == LocationType.OFF_SITE
        assert derive_location(make_job(parts=[{"is_off_site": False}])) == LocationType.IN_HOUSE
        mixed = make_job(parts=[{"is_off_site": True}, {"is_off_site": False}])
        assert derive_location(mixed) == LocationType.MIXED

    def test_falls_back_to_service_type(self):
        assert derive_location(make_job(service_type="vendor")) == LocationType.OFF_SITE
        assert derive_location(make_job(service_type="onsite")) == LocationType.IN_HOUSE

    def test_unknown(self):
        assert derive_location(make_job(parts=[{"is_off_site": None}])) is None


def test_group_by_vendor():
    jobs = [make_job("a", vendor_id="v-1"), make_job("b"), make_job("c", vendor_id="v-1")]
    grouped = group_by_vendor(jobs)
    assert ids(grouped["v-1"]) == ["a", "c"]
    assert ids(grouped[UNASSIGNED]) == ["b"]


def test_group_by_location_puts_mixed_off_site():
    jobs = [
        make_job("house", parts=[{"is_off_site": False}]),
        make_job("mixed", parts=[{"is_off_site": True}, {"is_off_site": False}]),
        make_job("unknown"),
    ]
    lanes = group_by_location(jobs)
    assert ids(lanes["onsite"]) == ["house", "unknown"]
    assert ids(lanes["offsite"]) == ["mixed"]


def test_group_by_day_orders_days_and_all_day_items():
    jobs = [
        make_job("timed", scheduled_start="2026-01-14T15:00:00Z"),
        make_job("floating"),
        make_job("promise", promised_date="2026-01-14"),
        make_job("late-night", scheduled_start="2026-01-14T03:00:00Z"),
    ]
    groups = group_by_day(jobs)
    assert [key for key, _ in groups] == ["2026-01-13", "2026-01-14", UNSCHEDULED]
    assert ids(groups[0][1]) == ["late-night"]
    assert ids(groups[1][1]) == ["promise", "timed"]
    assert ids(groups[2][1]) == ["floating"]


def test_day_key_uses_the_bound_that_parses():
    job = make_job("a", scheduled_start="not-a-date", scheduled_end="2025-12-31T15:00:00Z")
    assert day_key_for(job) == ("2025-12-31", False)
    assert schedule_display(job).primary == "Wed, Dec 31 • 10:00 AM ET"


class TestScheduleDisplay:
    def test_timed_window(self):
        job = make_job(scheduled_start="2026-01-14T14:00:00Z", scheduled_end="2026-01-14T15:30:00Z")
        display = schedule_display(job)
        assert display.primary == "Wed, Jan 14 • 9:00 AM–10:30 AM ET"
        assert display.badge == ""

    def test_date_only_start(self):
        assert schedule_display(make_job(scheduled_start="2026-01-14")).primary == (
            "Wed, Jan 14 • Time TBD"
        )

    def test_promise_only(self):
        display = schedule_display(make_job(promised_date="2026-01-14T00:00:00.000Z"))
        assert display.primary == "All-day (Time TBD) • Wed, Jan 14"
        assert display.badge == "Scheduled (No Time)"

    def test_nothing_scheduled(self):
        assert schedule_display(make_job()).primary == NO_SCHEDULE
