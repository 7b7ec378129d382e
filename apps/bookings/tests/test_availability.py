from __future__ import annotations

from datetime import date, datetime, time, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest

from apps.bookings import holds
from apps.bookings.domain.availability import (
    CONFLICT_SCHEDULE,
    DateOverride,
    OccupiedWindow,
    WeeklyRule,
    daily_ranges,
    evaluate_availability,
    local_dates,
)
from apps.bookings.exceptions import InvalidTimeRange
from apps.bookings.models import Booking
from apps.bookings.services import check_spot_availability
from apps.spots.models import AvailabilityRule, CalendarOverride
from shared.domain.value_objects import TimeRange

UTC = dt_timezone.utc


def at(hour: int, minute: int = 0, day: int = 7) -> datetime:
    # 2030-01-07 is a Monday
    return datetime(2030, 1, day, hour, minute, tzinfo=UTC)


def window(start: datetime, end: datetime) -> TimeRange:
    return TimeRange(start, end)


# ----------------------------------------------------------------------------
# Pure predicate
# ----------------------------------------------------------------------------

def test_back_to_back_windows_do_not_conflict():
    occupied = [OccupiedWindow(window(at(10), at(11)))]

    assert evaluate_availability(window(at(11), at(12)), occupied).available
    assert evaluate_availability(window(at(9), at(10)), occupied).available


@pytest.mark.parametrize(
    "start,end",
    [
        (at(10, 30), at(11, 30)),
        (at(9, 30), at(10, 30)),
        (at(9), at(12)),
        (at(10, 15), at(10, 45)),
    ],
)
def test_any_overlap_is_a_conflict(start, end):
    occupied = [OccupiedWindow(window(at(10), at(11)))]

    result = evaluate_availability(window(start, end), occupied)

    assert not result.available
    assert "already reserved" in result.reason


def test_hold_conflict_has_its_own_reason():
    occupied = [OccupiedWindow(window(at(10), at(11)), kind="hold")]

    result = evaluate_availability(window(at(10), at(11)), occupied)

    assert not result.available
    assert "being booked" in result.reason


def test_no_declared_schedule_means_unavailable():
    result = evaluate_availability(window(at(1), at(23)), [], rules=[], overrides=[], tz=UTC)

    assert not result.available
    assert result.kind == CONFLICT_SCHEDULE


def test_same_day_window_must_fit_inside_one_rule():
    rules = [WeeklyRule(0, time(8), time(18))]

    assert evaluate_availability(window(at(9), at(17)), [], rules, [], UTC).available

    result = evaluate_availability(window(at(17), at(19)), [], rules, [], UTC)
    assert not result.available
    assert result.kind == CONFLICT_SCHEDULE


def test_rule_for_other_weekday_does_not_apply():
    rules = [WeeklyRule(1, time(0), time(23, 59))]  # Tuesday

    assert not evaluate_availability(window(at(9), at(10)), [], rules, [], UTC).available


def test_unavailable_rule_does_not_open_time():
    rules = [WeeklyRule(0, time(8), time(18), is_available=False)]

    assert not evaluate_availability(window(at(9), at(10)), [], rules, [], UTC).available


def test_window_ending_at_midnight_needs_rule_until_end_of_day():
    rules = [WeeklyRule(0, time(20), time(23, 59))]
    late = window(at(22), datetime(2030, 1, 8, 0, 0, tzinfo=UTC))

    assert evaluate_availability(late, [], rules, [], UTC).available
    assert not evaluate_availability(late, [], [WeeklyRule(0, time(20), time(23))], [], UTC).available


def test_multi_day_window_needs_every_weekday_open():
    overnight = window(at(20), at(8, day=8))
    monday_only = [WeeklyRule(0, time(0), time(23, 59))]
    both = monday_only + [WeeklyRule(1, time(0), time(23, 59))]

    assert not evaluate_availability(overnight, [], monday_only, [], UTC).available
    assert evaluate_availability(overnight, [], both, [], UTC).available


def test_multi_day_window_must_fit_hours_of_each_day():
    # Monday 10:00 to Tuesday 10:00 spans the closed evening and morning
    office_hours = [WeeklyRule(0, time(9), time(17)), WeeklyRule(1, time(9), time(17))]

    result = evaluate_availability(window(at(10), at(10, day=8)), [], office_hours, [], UTC)

    assert not result.available
    assert result.kind == CONFLICT_SCHEDULE


def test_multi_day_window_checks_first_middle_and_last_day():
    rules = [
        WeeklyRule(0, time(18), time(23, 59)),
        WeeklyRule(1, time(0), time(23, 59)),
        WeeklyRule(2, time(0), time(8)),
    ]

    assert evaluate_availability(window(at(19), at(7, day=9)), [], rules, [], UTC).available
    assert not evaluate_availability(window(at(17), at(7, day=9)), [], rules, [], UTC).available
    assert not evaluate_availability(window(at(19), at(9, day=9)), [], rules, [], UTC).available


def test_daily_ranges_split_window_at_local_midnight():
    assert daily_ranges(window(at(20), at(8, day=9)), UTC) == [
        (date(2030, 1, 7), time(20), None),
        (date(2030, 1, 8), time(0), None),
        (date(2030, 1, 9), time(0), time(8)),
    ]


def test_closed_override_blocks_even_without_rules():
    overrides = [DateOverride(date(2030, 1, 7), is_available=False)]

    result = evaluate_availability(window(at(9), at(10)), [], [], overrides, UTC)

    assert not result.available
    assert "closed" in result.reason


def test_closed_override_wins_over_open_rule():
    rules = [WeeklyRule(0, time(0), time(23, 59))]
    overrides = [DateOverride(date(2030, 1, 7), is_available=False)]

    assert not evaluate_availability(window(at(9), at(10)), [], rules, overrides, UTC).available


def test_open_override_without_hours_opens_whole_day():
    overrides = [DateOverride(date(2030, 1, 7), is_available=True)]

    assert evaluate_availability(window(at(1), at(23)), [], [], overrides, UTC).available


def test_open_override_with_hours_replaces_weekly_rule():
    rules = [WeeklyRule(0, time(0), time(23, 59))]
    overrides = [DateOverride(date(2030, 1, 7), True, time(12), time(14))]

    assert evaluate_availability(window(at(12), at(14)), [], rules, overrides, UTC).available
    assert not evaluate_availability(window(at(9), at(10)), [], rules, overrides, UTC).available
    assert not evaluate_availability(window(at(13), at(15)), [], rules, overrides, UTC).available


def test_override_applies_only_to_its_own_date():
    rules = [WeeklyRule(1, time(9), time(17))]
    overrides = [DateOverride(date(2030, 1, 7), True, time(20), time(23, 59))]

    assert evaluate_availability(window(at(21), at(0, day=8)), [], rules, overrides, UTC).available
    assert not evaluate_availability(window(at(21), at(10, day=8)), [], rules, overrides, UTC).available


def test_schedule_is_evaluated_in_spot_timezone():
    # 06:00 UTC on Monday is 22:00 Sunday in Los Angeles
    tz = ZoneInfo("America/Los_Angeles")
    rules = [WeeklyRule(6, time(20), time(23))]

    assert evaluate_availability(window(at(6), at(7)), [], rules, [], tz).available


def test_local_dates_treats_end_as_exclusive():
    assert local_dates(window(at(22), at(0, day=8)), UTC) == [date(2030, 1, 7)]
    assert local_dates(window(at(22), at(0, 1, day=8)), UTC) == [date(2030, 1, 7), date(2030, 1, 8)]


# ----------------------------------------------------------------------------
# check_spot_availability against the database
# ----------------------------------------------------------------------------

@pytest.mark.django_db
def test_blocking_statuses_make_window_unavailable(spot, make_booking):
    for status in Booking.BLOCKING_STATUSES:
        booking = make_booking(at(10), at(11), status=status)
        assert not check_spot_availability(spot, at(10, 30), at(11, 30), now=at(8)).available
        booking.delete()


@pytest.mark.django_db
@pytest.mark.parametrize(
    "status",
    [Booking.Status.CANCELED, Booking.Status.COMPLETED, Booking.Status.REFUNDED, Booking.Status.PENDING],
)
def test_non_blocking_statuses_free_the_window(spot, make_booking, status):
    make_booking(at(10), at(11), status=status)

    assert check_spot_availability(spot, at(10), at(11), now=at(8)).available


@pytest.mark.django_db
def test_requesters_own_reservation_still_blocks(spot, renter, make_booking):
    make_booking(at(10), at(11))

    assert not check_spot_availability(spot, at(10), at(11), requester=renter, now=at(8)).available


@pytest.mark.django_db
def test_exclude_booking_id_ignores_that_reservation(spot, make_booking):
    booking = make_booking(at(10), at(11))

    assert check_spot_availability(spot, at(10), at(12), exclude_booking_id=booking.pk, now=at(8)).available


@pytest.mark.django_db
def test_live_hold_of_someone_else_blocks(spot, renter, other_renter):
    holds.save_hold(spot.pk, other_renter.pk, at(14), at(15), at(13))

    assert not check_spot_availability(spot, at(14), at(15), requester=renter, now=at(13)).available
    assert check_spot_availability(spot, at(14), at(15), requester=other_renter, now=at(13)).available
    assert check_spot_availability(spot, at(14), at(15), requester=renter, include_holds=False, now=at(13)).available


@pytest.mark.django_db
def test_expired_hold_does_not_block(spot, renter, other_renter):
    holds.save_hold(spot.pk, other_renter.pk, at(14), at(15), at(13))

    assert check_spot_availability(spot, at(14), at(15), requester=renter, now=at(13, 11)).available


@pytest.mark.django_db
def test_declared_schedule_and_overrides(spot):
    spot.availability_rules.all().delete()
    AvailabilityRule.objects.create(spot=spot, day_of_week=0, start_time=time(8), end_time=time(18))

    assert check_spot_availability(spot, at(9), at(10), now=at(7)).available
    assert not check_spot_availability(spot, at(18), at(19), now=at(7)).available

    CalendarOverride.objects.create(spot=spot, override_date=date(2030, 1, 7), is_available=False)
    assert not check_spot_availability(spot, at(9), at(10), now=at(7)).available


@pytest.mark.django_db
def test_spot_without_rules_is_unavailable(spot):
    spot.availability_rules.all().delete()

    result = check_spot_availability(spot, at(9), at(10), now=at(7))

    assert not result.available
    assert result.kind == CONFLICT_SCHEDULE


@pytest.mark.django_db
def test_override_hours_are_loaded_for_touched_dates(spot):
    CalendarOverride.objects.create(
        spot=spot, override_date=date(2030, 1, 8), is_available=True, start_time=time(9), end_time=time(17)
    )

    assert check_spot_availability(spot, at(9, day=8), at(17, day=8), now=at(7)).available
    assert not check_spot_availability(spot, at(20), at(10, day=8), now=at(7)).available
    assert check_spot_availability(spot, at(20), at(23, day=7), now=at(7)).available


@pytest.mark.django_db
def test_inactive_spot_is_unavailable(spot):
    spot.is_active = False
    spot.save()

    assert not check_spot_availability(spot, at(9), at(10), now=at(7)).available


@pytest.mark.django_db
def test_empty_window_is_invalid(spot):
    with pytest.raises(InvalidTimeRange):
        check_spot_availability(spot, at(10), at(10), now=at(7))
    with pytest.raises(InvalidTimeRange):
        check_spot_availability(spot, at(11), at(10), now=at(7))
