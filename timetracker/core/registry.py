from timetracker.core.store import IntervalStore
from timetracker.models.activity_log import OPEN_TIMER_SLOT, ActivityLog


class SessionRegistry:
    """
    The system-wide "one open timer" rule.

    Backed by the store, never by process memory: ``current_active_or_paused``
    is a query, and the slot itself is the unique ``timer_slot`` column, so
    the database rejects a second open session even when two requests pass
    the query check at the same time.
    """

    def __init__(self, store: IntervalStore):
        self.store = store

    def current_active_or_paused(self) -> ActivityLog | None:
        return self.store.find_open_session()

    @staticmethod
    def claim(session: ActivityLog) -> None:
        session.timer_slot = OPEN_TIMER_SLOT

    @staticmethod
    def release(session: ActivityLog) -> None:
        session.timer_slot = None
