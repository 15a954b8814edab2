import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from timetracker.core.config import settings
from timetracker.core.deps import get_manual_entries, get_store, get_timer_session
from timetracker.core.errors import EntryNotFoundError
from timetracker.core.manual_entry import ManualEntryValidator
from timetracker.core.store import IntervalStore
from timetracker.core.timer_session import TimerSession
from timetracker.schemas.activity_log import (
    ActivityLogOut,
    ManualEntryEdit,
    ManualEntryIn,
    entry_out,
)

logger = logging.getLogger("timetracker.activity_logs")

router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=settings.tz)
    return value


@router.get("", response_model=list[ActivityLogOut])
def list_activity_logs(
    start_from: datetime | None = Query(default=None, alias="from"),
    start_to: datetime | None = Query(default=None, alias="to"),
    limit: int | None = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    timers: TimerSession = Depends(get_timer_session),
):
    entries = timers.history(_aware(start_from), _aware(start_to), limit, offset)
    return [entry_out(e) for e in entries]


@router.get("/page/{page}", response_model=list[ActivityLogOut])
def page_activity_logs(page: int, timers: TimerSession = Depends(get_timer_session)):
    size = settings.ACTIVITY_LOGS_PAGE_SIZE
    entries = timers.history(limit=size, offset=max(page - 1, 0) * size)
    return [entry_out(e) for e in entries]


@router.get("/{entry_id}", response_model=ActivityLogOut)
def get_activity_log(
    entry_id: str, timers: TimerSession = Depends(get_timer_session)
):
    return entry_out(timers.get(entry_id))


@router.post("/manual/{activity_id}", response_model=ActivityLogOut, status_code=201)
def create_manual_entry(
    activity_id: str,
    payload: ManualEntryIn,
    manual: ManualEntryValidator = Depends(get_manual_entries),
):
    entry = manual.create(activity_id, payload.start_time, payload.end_time)
    return entry_out(entry)


@router.patch("/{entry_id}", response_model=ActivityLogOut)
def edit_manual_entry(
    entry_id: str,
    payload: ManualEntryEdit,
    manual: ManualEntryValidator = Depends(get_manual_entries),
):
    entry = manual.update(
        entry_id, payload.start_time, payload.end_time, payload.activity_id
    )
    return entry_out(entry)


@router.delete("/{entry_id}", status_code=204)
def delete_activity_log(entry_id: str, store: IntervalStore = Depends(get_store)):
    entry = store.get_entry(entry_id, for_update=True)
    if entry is None:
        raise EntryNotFoundError()

    store.delete(entry)
    store.commit()
    logger.info("Activity log %s deleted", entry_id)
    return None
