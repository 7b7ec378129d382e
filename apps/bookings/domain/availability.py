"""
Availability Oracle

Pure predicate deciding whether a spot can be reserved for a window.
This is the single definition of "overlap" used by holds, commits and
extensions; callers load the rows, this module only evaluates them.

A window is unavailable when:
1. it overlaps any occupied window (blocking reservations, live holds)
2. some local date it touches is closed by a calendar override, or falls
   outside the hours an open override grants
3. some other local date it touches is not covered by an open weekly rule
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Sequence, Union

from shared.domain.value_objects import TimeRange

END_OF_DAY = time(23, 59)


@dataclass(frozen=True)
class Available:
    available = True
    reason = None


CONFLICT_OVERLAP = "overlap"
CONFLICT_SCHEDULE = "schedule"


@dataclass(frozen=True)
class Conflict:
    reason: str
    kind: str = CONFLICT_OVERLAP
    available = False


AvailabilityResult = Union[Available, Conflict]


@dataclass(frozen=True)
class OccupiedWindow:
    """A committed reservation or a live hold occupying part of the calendar."""

    window: TimeRange
    kind: str = "booking"
    reference: str = ""


@dataclass(frozen=True)
class WeeklyRule:
    day_of_week: int  # 0 = Monday
    start_time: time
    end_time: time
    is_available: bool = True


@dataclass(frozen=True)
class DateOverride:
    override_date: date
    is_available: bool
    start_time: time | None = None
    end_time: time | None = None

    @property
    def all_day(self) -> bool:
        return self.start_time is None or self.end_time is None


def find_overlap(window: TimeRange, occupied: Iterable[OccupiedWindow]) -> OccupiedWindow | None:
    """Return the first occupied window overlapping ``window``, if any."""
    for item in occupied:
        if item.window.overlaps_with(window):
            return item
    return None


def local_dates(window: TimeRange, tz: tzinfo) -> list[date]:
    """Local calendar dates touched by the half-open window."""
    first = window.start.astimezone(tz).date()
    last = (window.end.astimezone(tz) - timedelta(microseconds=1)).date()
    days = (last - first).days
    return [first + timedelta(days=offset) for offset in range(days + 1)]


def daily_ranges(window: TimeRange, tz: tzinfo) -> list[tuple[date, time, time | None]]:
    """
    Split the window into one ``(date, start, end)`` range per local date.

    The first day starts at the local start time and every later day at
    midnight. The last day ends at the local end time; earlier days run to
    midnight, which is reported as ``end=None``.
    """
    local_start: datetime = window.start.astimezone(tz)
    local_end: datetime = window.end.astimezone(tz)
    dates = local_dates(window, tz)
    ranges = []
    for day in dates:
        start = local_start.time() if day == local_start.date() else time(0)
        end = local_end.time() if day == local_end.date() else None
        ranges.append((day, start, end))
    return ranges


def _fits(open_from: time, open_until: time, start: time, end: time | None) -> bool:
    # open_until of 23:59 or later counts as open until midnight
    if open_from > start:
        return False
    if open_until >= END_OF_DAY:
        return True
    return end is not None and open_until >= end


def _rule_covers(rule: WeeklyRule, start: time, end: time | None) -> bool:
    return rule.is_available and _fits(rule.start_time, rule.end_time, start, end)


def _day_conflict(
    day: date,
    start: time,
    end: time | None,
    rules: Sequence[WeeklyRule],
    override: DateOverride | None,
) -> str | None:
    if override is not None:
        if not override.is_available:
            return f"Spot is closed on {day.isoformat()}"
        if override.all_day or _fits(override.start_time, override.end_time, start, end):
            return None
        return f"Requested time is outside the spot's hours on {day.isoformat()}"

    weekday = day.weekday()
    if any(r.day_of_week == weekday and _rule_covers(r, start, end) for r in rules):
        return None
    if not any(r.day_of_week == weekday and r.is_available for r in rules):
        return f"Spot is not available on {day.strftime('%A')}s"
    return "Requested time is outside the spot's available hours"


def schedule_conflict(
    window: TimeRange,
    rules: Sequence[WeeklyRule],
    overrides: Sequence[DateOverride],
    tz: tzinfo,
) -> str | None:
    """
    Return a reason when the window falls outside the declared schedule

    Every local date the window touches is checked on its own. A calendar
    override for the date takes precedence over the weekly rules: a closed
    override blocks the day, an open one without hours opens the whole day
    and an open one with hours opens only that range. Without an override
    some open weekly rule must cover the day's range. A spot with no open
    rules and no open override is never available.
    """
    by_date = {o.override_date: o for o in overrides}
    for day, start, end in daily_ranges(window, tz):
        reason = _day_conflict(day, start, end, rules, by_date.get(day))
        if reason:
            return reason
    return None


def evaluate_availability(
    window: TimeRange,
    occupied: Iterable[OccupiedWindow],
    rules: Sequence[WeeklyRule] = (),
    overrides: Sequence[DateOverride] = (),
    tz: tzinfo | None = None,
) -> AvailabilityResult:
    """
    Decide availability of ``window``

    Overlap uses half-open intervals: ``existing.start < candidate.end and
    existing.end > candidate.start``, so back-to-back windows never conflict.
    """
    clash = find_overlap(window, occupied)
    if clash is not None:
        if clash.kind == "hold":
            return Conflict("Spot is currently being booked by another user")
        return Conflict("Spot is already reserved for the requested time")

    if tz is not None:
        reason = schedule_conflict(window, rules, overrides, tz)
        if reason:
            return Conflict(reason, kind=CONFLICT_SCHEDULE)

    return Available()
