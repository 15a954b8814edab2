"""
Live timer sessions.

States are ``EntryStatus`` values; ``completed`` is terminal. Each
(state, action) pair maps either to a transition function or to the error
class that rejects it, and ``TRANSITIONS`` covers every pair. ``RESET``
only validates the state; ``TimerSession.reset`` deletes the row.

Crash recovery sits beside the table: it is a reconciliation step driven by
the heartbeat gap, not a user action. It runs on the read paths and ahead of
every heartbeat; a stop only applies its abandonment branch, so a session
past the cutoff ends at its last heartbeat instead of at the stop request.
"""

import enum
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from timetracker.core import pause_ledger
from timetracker.core.clock import Clock
from timetracker.core.config import settings
from timetracker.core.errors import (
    AlreadyActiveError,
    AlreadyPausedError,
    AlreadyStoppedError,
    EntryNotFoundError,
    InvalidReferenceError,
    MustResumeBeforeStopError,
    TimerAlreadyRunningError,
    TrackerError,
    WrongEntryKindError,
)
from timetracker.core.registry import SessionRegistry
from timetracker.core.store import IntervalStore, parse_id
from timetracker.models.activity_log import ActivityLog, EntryStatus, EntryType
from timetracker.schemas.activity_log import entry_out

logger = logging.getLogger("timetracker.timers")


class TimerAction(str, enum.Enum):
    PAUSE = "pause"
    RESUME = "resume"
    HEARTBEAT = "heartbeat"
    STOP = "stop"
    RESET = "reset"


class RecoveryOutcome(str, enum.Enum):
    UNCHANGED = "unchanged"  # not active (paused or completed)
    TOUCHED = "touched"  # short gap, heartbeat refreshed
    HEALED = "healed"  # gap carved out as a pause
    FINALIZED = "finalized"  # abandoned, stopped at the last heartbeat


Transition = Callable[[ActivityLog, datetime], None]


def finalize(session: ActivityLog, end: datetime) -> None:
    session.end_time = end
    session.last_heartbeat = end
    session.duration = pause_ledger.net_duration(
        session.start_time, end, session.pauses
    )
    session.status = EntryStatus.COMPLETED
    SessionRegistry.release(session)


def _pause(session: ActivityLog, now: datetime) -> None:
    pause_ledger.begin_pause(session.pauses, now)
    session.status = EntryStatus.PAUSED
    session.last_heartbeat = now


def _resume(session: ActivityLog, now: datetime) -> None:
    pause_ledger.end_pause(session.pauses, now)
    session.status = EntryStatus.ACTIVE
    session.last_heartbeat = now


def _heartbeat(session: ActivityLog, now: datetime) -> None:
    session.last_heartbeat = now


def _stop(session: ActivityLog, now: datetime) -> None:
    finalize(session, now)


def _reset(session: ActivityLog, now: datetime) -> None:
    # the caller deletes the row; nothing survives a reset
    pass


A, P, C = EntryStatus.ACTIVE, EntryStatus.PAUSED, EntryStatus.COMPLETED

TRANSITIONS: dict[tuple[EntryStatus, TimerAction], Transition | type[TrackerError]] = {
    (A, TimerAction.PAUSE): _pause,
    (P, TimerAction.PAUSE): AlreadyPausedError,
    (C, TimerAction.PAUSE): AlreadyStoppedError,
    (A, TimerAction.RESUME): AlreadyActiveError,
    (P, TimerAction.RESUME): _resume,
    (C, TimerAction.RESUME): AlreadyStoppedError,
    (A, TimerAction.HEARTBEAT): _heartbeat,
    (P, TimerAction.HEARTBEAT): _heartbeat,
    (C, TimerAction.HEARTBEAT): AlreadyStoppedError,
    (A, TimerAction.STOP): _stop,
    (P, TimerAction.STOP): MustResumeBeforeStopError,
    (C, TimerAction.STOP): AlreadyStoppedError,
    (A, TimerAction.RESET): _reset,
    (P, TimerAction.RESET): _reset,
    (C, TimerAction.RESET): AlreadyStoppedError,
}


def apply_transition(session: ActivityLog, action: TimerAction, now: datetime) -> None:
    outcome = TRANSITIONS[(EntryStatus(session.status), action)]
    if isinstance(outcome, type) and issubclass(outcome, TrackerError):
        raise outcome()
    outcome(session, now)


def classify_gap(gap: timedelta) -> RecoveryOutcome:
    if gap <= settings.min_gap_for_confirmation:
        return RecoveryOutcome.TOUCHED
    if gap < settings.max_gap_for_confirmation:
        return RecoveryOutcome.HEALED
    return RecoveryOutcome.FINALIZED


def recover_session(session: ActivityLog, now: datetime) -> RecoveryOutcome:
    """
    Heal a session from its heartbeat gap. Only ``active`` sessions are
    considered; an explicit pause is not a crash. Idempotent once completed.
    """
    if session.status != EntryStatus.ACTIVE:
        return RecoveryOutcome.UNCHANGED

    gap = now - session.last_heartbeat
    outcome = classify_gap(gap)
    minutes = int(gap.total_seconds() // 60)

    if outcome is RecoveryOutcome.TOUCHED:
        session.last_heartbeat = now
    elif outcome is RecoveryOutcome.HEALED:
        logger.info(
            "[Recovery] Gap detected: %d min on %s. Injecting pause.",
            minutes,
            session.id,
        )
        pause_ledger.insert_gap(session.pauses, session.last_heartbeat, now)
        session.last_heartbeat = now
    else:
        logger.info(
            "[Recovery] Timer %s abandoned (%d min gap). Auto-stopping at last heartbeat.",
            session.id,
            minutes,
        )
        finalize(session, session.last_heartbeat)
    return outcome


def recover_before(
    session: ActivityLog, action: TimerAction, now: datetime
) -> RecoveryOutcome:
    """
    Reconcile ahead of a user action. Heartbeats get full recovery; a stop
    only finalizes an abandoned session, shorter gaps still count as worked.
    """
    if action is TimerAction.HEARTBEAT:
        return recover_session(session, now)
    if action is TimerAction.STOP and session.status == EntryStatus.ACTIVE:
        gap = now - session.last_heartbeat
        if classify_gap(gap) is RecoveryOutcome.FINALIZED:
            return recover_session(session, now)
    return RecoveryOutcome.UNCHANGED


class TimerSession:
    """Every call re-reads the session from the store, mutates it and commits."""

    def __init__(self, store: IntervalStore, clock: Clock):
        self.store = store
        self.clock = clock
        self.registry = SessionRegistry(store)

    def _load(self, session_id: str | uuid.UUID) -> ActivityLog:
        session = self.store.get_entry(session_id, for_update=True)
        if session is None:
            raise EntryNotFoundError()
        if session.entry_type != EntryType.TIMER:
            raise WrongEntryKindError()
        return session

    def _running_conflict(self) -> TimerAlreadyRunningError:
        active = self.registry.current_active_or_paused()
        if active is None:
            return TimerAlreadyRunningError()
        return TimerAlreadyRunningError(
            active_session=entry_out(active).model_dump(mode="json")
        )

    def start(self, activity_id: str | uuid.UUID) -> ActivityLog:
        if not self.store.activity_exists(activity_id):
            raise InvalidReferenceError()

        if self.registry.current_active_or_paused() is not None:
            raise self._running_conflict()

        now = self.clock.now()
        session = ActivityLog(
            activity_id=parse_id(activity_id),
            entry_type=EntryType.TIMER,
            status=EntryStatus.ACTIVE,
            start_time=now,
            end_time=None,
            last_heartbeat=now,
            duration=None,
        )
        self.registry.claim(session)
        self.store.add(session)
        # a concurrent start that won the slot surfaces as a unique violation
        self.store.commit(on_conflict=self._running_conflict)
        self.store.refresh(session)
        logger.info("Timer %s started activity=%s", session.id, session.activity_id)
        return session

    def _act(self, session_id: str | uuid.UUID, action: TimerAction) -> ActivityLog:
        session = self._load(session_id)
        now = self.clock.now()
        if recover_before(session, action, now) is not RecoveryOutcome.FINALIZED:
            apply_transition(session, action, now)
        self.store.commit()
        self.store.refresh(session)
        logger.info("Timer %s %s -> %s", session.id, action.value, session.status.value)
        return session

    def pause(self, session_id: str | uuid.UUID) -> ActivityLog:
        return self._act(session_id, TimerAction.PAUSE)

    def resume(self, session_id: str | uuid.UUID) -> ActivityLog:
        return self._act(session_id, TimerAction.RESUME)

    def heartbeat(self, session_id: str | uuid.UUID) -> ActivityLog:
        return self._act(session_id, TimerAction.HEARTBEAT)

    def stop(self, session_id: str | uuid.UUID) -> ActivityLog:
        return self._act(session_id, TimerAction.STOP)

    def reset(self, session_id: str | uuid.UUID) -> None:
        session = self._load(session_id)
        apply_transition(session, TimerAction.RESET, self.clock.now())
        self.store.delete(session)
        self.store.commit()
        logger.info("Timer %s discarded", session.id)

    def recover(self, session_id: str | uuid.UUID) -> ActivityLog:
        session = self._load(session_id)
        self._recover_loaded(session)
        return session

    def _recover_loaded(self, session: ActivityLog) -> RecoveryOutcome:
        outcome = recover_session(session, self.clock.now())
        if outcome is not RecoveryOutcome.UNCHANGED:
            self.store.commit()
            self.store.refresh(session)
        return outcome

    # -------- read paths (recovery runs lazily here) --------

    def current(self) -> ActivityLog | None:
        session = self.registry.current_active_or_paused()
        if session is None:
            return None
        self._recover_loaded(session)
        return session if session.is_open else None

    def get(self, entry_id: str | uuid.UUID) -> ActivityLog:
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError()
        if entry.entry_type == EntryType.TIMER:
            self._recover_loaded(entry)
        return entry

    def history(
        self,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ActivityLog]:
        entries = self.store.query(start_from, start_to, limit, offset)
        for entry in entries:
            if entry.entry_type == EntryType.TIMER and entry.is_open:
                self._recover_loaded(entry)
        return entries
