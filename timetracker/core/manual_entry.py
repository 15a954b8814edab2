"""
Backdated ("manual") entries.

Rules, checked in this order:

1. the activity exists
2. both instants parse
3. the start is no earlier than midnight of yesterday, computed from the
   current instant in the configured timezone
4. neither instant is in the future, start precedes end, and the span is
   within the configured min/max activity duration
5. the interval does not intersect a completed entry, nor end after the
   start of a running timer
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta, tzinfo

from timetracker.core.clock import Clock
from timetracker.core.config import settings
from timetracker.core.errors import (
    ConcurrentModificationError,
    EntryNotFoundError,
    InvalidReferenceError,
    InvalidTimeRangeError,
    LookbackExceededError,
    OverlapDetectedError,
    WrongEntryKindError,
)
from timetracker.core.overlap import OverlapValidator
from timetracker.core.store import IntervalStore, parse_id
from timetracker.models.activity_log import ActivityLog, EntryStatus, EntryType

logger = logging.getLogger("timetracker.manual")


def parse_instant(value: str | datetime | None, tz: tzinfo) -> datetime | None:
    """ISO-8601 string or datetime to an aware instant; naive values are read in ``tz``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def start_of_yesterday(now: datetime, tz: tzinfo) -> datetime:
    local_today: date = now.astimezone(tz).date()
    return datetime.combine(local_today - timedelta(days=1), time.min, tzinfo=tz)


class ManualEntryValidator:
    def __init__(self, store: IntervalStore, clock: Clock, tz: tzinfo | None = None):
        self.store = store
        self.clock = clock
        self.tz = tz or settings.tz
        self.overlaps = OverlapValidator(store, self.tz)

    def check_time_range(self, start: datetime, end: datetime, now: datetime) -> None:
        if start > now:
            raise InvalidTimeRangeError("Start time cannot be in the future.")
        if end > now:
            raise InvalidTimeRangeError("End time cannot be in the future.")
        if start >= end:
            raise InvalidTimeRangeError("Start time must be before End time.")

        span = end - start
        if span < settings.min_activity_duration:
            raise InvalidTimeRangeError(
                f"Activity Duration must be at least "
                f"{settings.MIN_ACTIVITY_DURATION_MIN} minutes."
            )
        if span > settings.max_activity_duration:
            raise InvalidTimeRangeError(
                f"Activity Duration cannot exceed "
                f"{settings.MAX_ACTIVITY_DURATION_HOURS} Hours."
            )

    def validate(
        self,
        activity_id: str | uuid.UUID,
        start_time: str | datetime | None,
        end_time: str | datetime | None,
        exclude_id: uuid.UUID | None = None,
    ) -> tuple[datetime, datetime]:
        """Run every rule; return the parsed ``(start, end)`` or raise."""
        if not self.store.activity_exists(activity_id):
            raise InvalidReferenceError()

        start = parse_instant(start_time, self.tz)
        end = parse_instant(end_time, self.tz)
        if start is None or end is None:
            raise InvalidTimeRangeError("Invalid date format provided.")

        now = self.clock.now()
        if start < start_of_yesterday(now, self.tz):
            raise LookbackExceededError()

        self.check_time_range(start, end, now)

        conflict = self.overlaps.has_overlap(start, end, exclude_id)
        if conflict is None:
            conflict = self.overlaps.running_timer_conflict(end, exclude_id)
        if conflict is not None:
            raise OverlapDetectedError(conflict.message, **conflict.to_context())

        return start, end

    def create(
        self,
        activity_id: str | uuid.UUID,
        start_time: str | datetime | None,
        end_time: str | datetime | None,
    ) -> ActivityLog:
        guard = self.store.lock_intervals()
        start, end = self.validate(activity_id, start_time, end_time)

        entry = ActivityLog(
            activity_id=parse_id(activity_id),
            entry_type=EntryType.MANUAL,
            status=EntryStatus.COMPLETED,
            start_time=start,
            end_time=end,
            last_heartbeat=end,
            duration=(end - start).total_seconds(),
        )
        self.store.add(entry)
        guard.bump()
        self.store.commit(on_conflict=ConcurrentModificationError)
        self.store.refresh(entry)
        logger.info(
            "Manual entry %s created activity=%s duration=%ss",
            entry.id,
            entry.activity_id,
            entry.duration,
        )
        return entry

    def update(
        self,
        entry_id: str | uuid.UUID,
        start_time: str | datetime | None,
        end_time: str | datetime | None,
        activity_id: str | uuid.UUID | None = None,
    ) -> ActivityLog:
        entry = self.store.get_entry(entry_id, for_update=True)
        if entry is None:
            raise EntryNotFoundError()
        if entry.entry_type != EntryType.MANUAL:
            raise WrongEntryKindError("Only manual entries can be edited.")

        guard = self.store.lock_intervals()
        target_activity = activity_id or entry.activity_id
        start, end = self.validate(
            target_activity, start_time, end_time, exclude_id=entry.id
        )

        entry.activity_id = parse_id(target_activity)
        entry.start_time = start
        entry.end_time = end
        entry.last_heartbeat = end
        entry.duration = (end - start).total_seconds()
        guard.bump()
        self.store.commit(on_conflict=ConcurrentModificationError)
        self.store.refresh(entry)
        logger.info("Manual entry %s updated", entry.id)
        return entry
