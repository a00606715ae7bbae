"""Pure scheduling core: date handling, range matching, status and conflicts."""

from .conflicts import detect_conflicts
from .dates import (
    REFERENCE_TIMEZONE,
    UNSCHEDULED,
    format_display_date,
    format_display_time_window,
    is_date_only_value,
    to_canonical_date_key,
)
from .display import ScheduleDisplay, schedule_display
from .grouping import derive_location, group_by_day, group_by_location, group_by_vendor
from .models import (
    Job,
    JobPart,
    JobStatus,
    LocationType,
    ScheduleFlags,
    ScheduleWindow,
    StatusChange,
    Vehicle,
)
from .pipeline import (
    FilterCriteria,
    SnapshotBuckets,
    apply_filters,
    filter_and_sort,
    split_snapshot_items,
)
from .query import matches
from .ranges import (
    CustomRange,
    DateRange,
    Interval,
    is_within_range,
    primary_window,
    resolve_date_range,
)
from .status import (
    ScheduleState,
    classify_schedule_state,
    get_effective_status,
    get_reopen_target_status,
    get_uncomplete_target_status,
    plan_completion,
    plan_reopen,
    plan_undo_completion,
)

__all__ = [
    "CustomRange",
    "DateRange",
    "FilterCriteria",
    "Interval",
    "Job",
    "JobPart",
    "JobStatus",
    "LocationType",
    "REFERENCE_TIMEZONE",
    "ScheduleDisplay",
    "ScheduleFlags",
    "ScheduleState",
    "ScheduleWindow",
    "SnapshotBuckets",
    "StatusChange",
    "UNSCHEDULED",
    "Vehicle",
    "apply_filters",
    "classify_schedule_state",
    "derive_location",
    "detect_conflicts",
    "filter_and_sort",
    "format_display_date",
    "format_display_time_window",
    "get_effective_status",
    "get_reopen_target_status",
    "get_uncomplete_target_status",
    "group_by_day",
    "group_by_location",
    "group_by_vendor",
    "is_date_only_value",
    "is_within_range",
    "matches",
    "plan_completion",
    "plan_reopen",
    "plan_undo_completion",
    "primary_window",
    "resolve_date_range",
    "schedule_display",
    "split_snapshot_items",
    "to_canonical_date_key",
]
