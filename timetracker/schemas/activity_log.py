from datetime import datetime
from pydantic import BaseModel, Field

from timetracker.models.activity_log import ActivityLog, EntryStatus, EntryType


class ManualEntryIn(BaseModel):
    # ISO-8601; parsed by the validator so bad formats get a domain error
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)


class ManualEntryEdit(BaseModel):
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)
    activity_id: str | None = None


class PauseIntervalOut(BaseModel):
    pause_time: datetime
    resume_time: datetime | None


class ActivityLogOut(BaseModel):
    id: str
    activity_id: str
    activity_name: str | None
    activity_color: str | None
    entry_type: EntryType
    status: EntryStatus
    start_time: datetime
    end_time: datetime | None
    last_heartbeat: datetime
    pause_history: list[PauseIntervalOut]
    duration: float | None


class ResetOut(BaseModel):
    ok: bool
    message: str


def entry_out(entry: ActivityLog) -> ActivityLogOut:
    activity = entry.activity
    return ActivityLogOut(
        id=str(entry.id),
        activity_id=str(entry.activity_id),
        activity_name=activity.name if activity else None,
        activity_color=activity.color if activity else None,
        entry_type=entry.entry_type,
        status=entry.status,
        start_time=entry.start_time,
        end_time=entry.end_time,
        last_heartbeat=entry.last_heartbeat,
        pause_history=[
            PauseIntervalOut(pause_time=p.pause_time, resume_time=p.resume_time)
            for p in (entry.pauses or [])
        ],
        duration=entry.duration,
    )
