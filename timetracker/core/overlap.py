import uuid
from dataclasses import dataclass
from datetime import datetime, tzinfo

from timetracker.core.config import settings
from timetracker.core.store import IntervalStore
from timetracker.models.activity_log import ActivityLog

UNKNOWN_ACTIVITY = "Unknown Activity"


def format_clock_time(value: datetime, tz: tzinfo) -> str:
    return value.astimezone(tz).strftime("%H:%M")


@dataclass(frozen=True)
class OverlapConflict:
    entry: ActivityLog
    activity_name: str
    start_label: str
    end_label: str | None

    @property
    def message(self) -> str:
        if self.end_label is None:
            return (
                f'Time overlap detected with a running timer for "{self.activity_name}" '
                f"(Started: {self.start_label}). Please stop it first."
            )
        return (
            f'Time overlap detected with "{self.activity_name}" '
            f"({self.start_label} - {self.end_label})."
        )

    def to_context(self) -> dict:
        return {
            "conflict": {
                "id": str(self.entry.id),
                "activity_id": str(self.entry.activity_id),
                "activity_name": self.activity_name,
                "start_time": self.entry.start_time.isoformat(),
                "end_time": self.entry.end_time.isoformat()
                if self.entry.end_time
                else None,
                "status": self.entry.status.value,
            }
        }


class OverlapValidator:
    def __init__(self, store: IntervalStore, tz: tzinfo | None = None):
        self.store = store
        self.tz = tz or settings.tz

    def _describe(self, entry: ActivityLog) -> OverlapConflict:
        name = entry.activity.name if entry.activity else UNKNOWN_ACTIVITY
        return OverlapConflict(
            entry=entry,
            activity_name=name,
            start_label=format_clock_time(entry.start_time, self.tz),
            end_label=format_clock_time(entry.end_time, self.tz)
            if entry.end_time
            else None,
        )

    def has_overlap(
        self,
        candidate_start: datetime,
        candidate_end: datetime,
        exclude_id: uuid.UUID | None = None,
    ) -> OverlapConflict | None:
        """
        First completed entry with ``start < candidate_end`` and
        ``end > candidate_start``, or None. Half-open: touching is fine.
        """
        entry = self.store.find_overlapping_completed(
            candidate_start, candidate_end, exclude_id
        )
        return self._describe(entry) if entry else None

    def running_timer_conflict(
        self, candidate_end: datetime, exclude_id: uuid.UUID | None = None
    ) -> OverlapConflict | None:
        # an open session will eventually cover [its start, stop); anything
        # ending after its start would collide once it completes
        entry = self.store.find_open_session_started_before(candidate_end, exclude_id)
        return self._describe(entry) if entry else None
