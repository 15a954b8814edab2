from datetime import datetime, timedelta, timezone

import pytest

from conftest import T0, make_activity
from timetracker.core.errors import (
    InvalidReferenceError,
    InvalidTimeRangeError,
    LookbackExceededError,
    OverlapDetectedError,
    WrongEntryKindError,
)
from timetracker.core.manual_entry import start_of_yesterday
from timetracker.core.overlap import OverlapValidator
from timetracker.models.activity_log import EntryStatus, EntryType


def at(hour, minute=0, day=10):
    return datetime(2026, 3, day, hour, minute, tzinfo=timezone.utc)


def iso(value):
    return value.isoformat()


@pytest.fixture(autouse=True)
def late_morning(clock):
    clock.set(at(11))


def test_start_of_yesterday_uses_the_current_instant():
    assert start_of_yesterday(T0, timezone.utc) == at(0, day=9)
    late = datetime(2026, 3, 10, 23, 59, tzinfo=timezone.utc)
    assert start_of_yesterday(late, timezone.utc) == at(0, day=9)


def test_create_manual_entry(manual, activity):
    entry = manual.create(activity.id, iso(at(10)), iso(at(10, 30)))

    assert entry.entry_type == EntryType.MANUAL
    assert entry.status == EntryStatus.COMPLETED
    assert entry.start_time == at(10)
    assert entry.end_time == at(10, 30)
    assert entry.last_heartbeat == entry.end_time
    assert entry.duration == 1800
    assert entry.pauses == []


def test_unknown_activity(manual):
    with pytest.raises(InvalidReferenceError):
        manual.create("a1b2c3d4-0000-4000-8000-000000000000", iso(at(9)), iso(at(10)))


def test_unparseable_times(manual, activity):
    with pytest.raises(InvalidTimeRangeError, match="Invalid date format"):
        manual.create(activity.id, "yesterday-ish", iso(at(10)))
    with pytest.raises(InvalidTimeRangeError):
        manual.create(activity.id, iso(at(9)), "")


def test_lookback_window(manual, activity):
    with pytest.raises(LookbackExceededError):
        manual.create(activity.id, iso(at(23, 50, day=8)), iso(at(0, 30, day=9)))

    entry = manual.create(activity.id, iso(at(0, day=9)), iso(at(1, day=9)))
    assert entry.duration == 3600


def test_future_times_rejected(manual, activity):
    with pytest.raises(InvalidTimeRangeError, match="End time"):
        manual.create(activity.id, iso(at(10, 50)), iso(at(11, 10)))
    with pytest.raises(InvalidTimeRangeError, match="Start time"):
        manual.create(activity.id, iso(at(11, 5)), iso(at(11, 30)))


def test_start_must_precede_end(manual, activity):
    with pytest.raises(InvalidTimeRangeError, match="before End"):
        manual.create(activity.id, iso(at(10)), iso(at(9)))


def test_below_minimum_duration(manual, activity):
    with pytest.raises(InvalidTimeRangeError, match="at least 5 minutes"):
        manual.create(activity.id, iso(at(10)), iso(at(10, 4)))

    entry = manual.create(activity.id, iso(at(10)), iso(at(10, 5)))
    assert entry.duration == 300


def test_above_maximum_duration(manual, activity):
    with pytest.raises(InvalidTimeRangeError, match="cannot exceed 24"):
        manual.create(activity.id, iso(at(0, day=9)), iso(at(10)))


def test_overlap_and_touching_boundary(manual, activity, db):
    gym = make_activity(db, name="Gym")
    manual.create(activity.id, iso(at(10)), iso(at(10, 30)))

    with pytest.raises(OverlapDetectedError) as exc:
        manual.create(gym.id, iso(at(10, 29)), iso(at(10, 45)))
    assert 'with "Reading" (10:00 - 10:30)' in exc.value.detail
    assert exc.value.context["conflict"]["activity_name"] == "Reading"

    touching = manual.create(gym.id, iso(at(10, 30)), iso(at(10, 45)))
    assert touching.start_time == at(10, 30)


def test_enclosing_interval_overlaps(manual, activity):
    manual.create(activity.id, iso(at(10)), iso(at(10, 30)))
    with pytest.raises(OverlapDetectedError):
        manual.create(activity.id, iso(at(9, 50)), iso(at(10, 40)))
    with pytest.raises(OverlapDetectedError):
        manual.create(activity.id, iso(at(10, 5)), iso(at(10, 25)))


def test_running_timer_blocks_later_manual_entries(manual, timers, activity, clock):
    clock.set(at(9))
    timers.start(activity.id)
    clock.set(at(11))

    with pytest.raises(OverlapDetectedError, match="running timer"):
        manual.create(activity.id, iso(at(9, 30)), iso(at(9, 45)))

    earlier = manual.create(activity.id, iso(at(8)), iso(at(9)))
    assert earlier.status == EntryStatus.COMPLETED


def test_naive_times_are_read_in_the_configured_zone(manual, activity):
    entry = manual.create(activity.id, "2026-03-10T10:00:00", "2026-03-10T10:20:00")
    assert entry.start_time == at(10)


def test_edit_revalidates_against_others_only(manual, activity):
    first = manual.create(activity.id, iso(at(9)), iso(at(9, 30)))
    second = manual.create(activity.id, iso(at(10)), iso(at(10, 30)))

    # shifting within its own old slot is fine
    moved = manual.update(second.id, iso(at(10, 10)), iso(at(10, 40)))
    assert moved.start_time == at(10, 10)
    assert moved.duration == 1800

    with pytest.raises(OverlapDetectedError):
        manual.update(second.id, iso(at(9, 20)), iso(at(9, 50)))
    assert first.end_time == at(9, 30)


def test_edit_rejects_timer_sessions(manual, timers, activity):
    session = timers.start(activity.id)
    with pytest.raises(WrongEntryKindError):
        manual.update(session.id, iso(at(9)), iso(at(9, 30)))


def test_overlap_validator_returns_none_without_conflict(store, manual, activity):
    manual.create(activity.id, iso(at(10)), iso(at(10, 30)))
    validator = OverlapValidator(store, timezone.utc)

    assert validator.has_overlap(at(9), at(10)) is None
    assert validator.has_overlap(at(10, 30), at(11)) is None

    conflict = validator.has_overlap(at(9), at(10, 1))
    assert conflict is not None
    assert (conflict.start_label, conflict.end_label) == ("10:00", "10:30")


def test_overlap_validator_ignores_open_sessions(store, timers, activity, clock):
    clock.set(at(9))
    timers.start(activity.id)
    validator = OverlapValidator(store, timezone.utc)

    assert validator.has_overlap(at(9), at(10)) is None
    assert validator.running_timer_conflict(at(10)) is not None
    assert validator.running_timer_conflict(at(9)) is None


def test_manual_duration_is_raw_span(manual, activity):
    start = at(10)
    end = start + timedelta(minutes=7, seconds=30)
    entry = manual.create(activity.id, iso(start), iso(end))
    assert entry.duration == 450
