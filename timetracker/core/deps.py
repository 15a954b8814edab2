from fastapi import Depends
from sqlalchemy.orm import Session

from timetracker.core.clock import Clock, get_clock
from timetracker.core.manual_entry import ManualEntryValidator
from timetracker.core.store import IntervalStore
from timetracker.core.timer_session import TimerSession
from timetracker.db.session import get_db


def get_store(db: Session = Depends(get_db)) -> IntervalStore:
    return IntervalStore(db)


def get_timer_session(
    store: IntervalStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> TimerSession:
    return TimerSession(store, clock)


def get_manual_entries(
    store: IntervalStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> ManualEntryValidator:
    return ManualEntryValidator(store, clock)
