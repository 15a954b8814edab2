import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from timetracker.core.errors import (
    ConcurrentModificationError,
    StorageError,
    TrackerError,
)
from timetracker.models.activity import Activity
from timetracker.models.activity_log import (
    INTERVAL_GUARD_ID,
    OPEN_STATUSES,
    ActivityLog,
    EntryStatus,
    IntervalGuard,
)

logger = logging.getLogger("timetracker.store")


def parse_id(value: str | uuid.UUID | None) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class IntervalStore:
    """
    Persistence of activity log entries. Every call re-reads from the
    database; nothing is cached between requests.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------- lookups --------

    def get_entry(
        self, entry_id: str | uuid.UUID, *, for_update: bool = False
    ) -> ActivityLog | None:
        # unresolvable ids and read failures both come back as None
        pk = parse_id(entry_id)
        if pk is None:
            return None
        try:
            q = self.db.query(ActivityLog).filter(ActivityLog.id == pk)
            if for_update:
                q = q.with_for_update()
            return q.first()
        except SQLAlchemyError:
            logger.exception("Error fetching log id=%s", entry_id)
            self.db.rollback()
            return None

    def get_activity(self, activity_id: str | uuid.UUID) -> Activity | None:
        pk = parse_id(activity_id)
        if pk is None:
            return None
        try:
            return self.db.query(Activity).filter(Activity.id == pk).first()
        except SQLAlchemyError:
            logger.exception("Error fetching activity id=%s", activity_id)
            self.db.rollback()
            return None

    def activity_exists(self, activity_id: str | uuid.UUID) -> bool:
        return self.get_activity(activity_id) is not None

    def activities_with_log_counts(self) -> list[tuple[Activity, int]]:
        try:
            return (
                self.db.query(Activity, func.count(ActivityLog.id))
                .outerjoin(ActivityLog, ActivityLog.activity_id == Activity.id)
                .group_by(Activity.id)
                .order_by(func.lower(Activity.name).asc())
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("Error fetching activities")
            self.db.rollback()
            raise StorageError("Failed to fetch activities") from exc

    def find_open_session(self, *, for_update: bool = False) -> ActivityLog | None:
        try:
            q = self.db.query(ActivityLog).filter(ActivityLog.status.in_(OPEN_STATUSES))
            if for_update:
                q = q.with_for_update()
            return q.first()
        except SQLAlchemyError as exc:
            logger.exception("Error checking active timers")
            self.db.rollback()
            raise StorageError("Database error checking timer status") from exc

    def find_overlapping_completed(
        self,
        start: datetime,
        end: datetime,
        exclude_id: uuid.UUID | None = None,
    ) -> ActivityLog | None:
        """First completed entry intersecting ``[start, end)``; touching ends do not count."""
        try:
            q = (
                self.db.query(ActivityLog)
                .options(joinedload(ActivityLog.activity))
                .filter(
                    and_(
                        ActivityLog.status == EntryStatus.COMPLETED,
                        ActivityLog.start_time < end,
                        ActivityLog.end_time > start,
                    )
                )
            )
            if exclude_id is not None:
                q = q.filter(ActivityLog.id != exclude_id)
            return q.order_by(ActivityLog.start_time.asc()).first()
        except SQLAlchemyError as exc:
            logger.exception("Overlap check failed")
            self.db.rollback()
            raise StorageError("Unable to verify time overlaps") from exc

    def find_open_session_started_before(
        self, end: datetime, exclude_id: uuid.UUID | None = None
    ) -> ActivityLog | None:
        try:
            q = (
                self.db.query(ActivityLog)
                .options(joinedload(ActivityLog.activity))
                .filter(
                    and_(
                        ActivityLog.status.in_(OPEN_STATUSES),
                        ActivityLog.start_time < end,
                    )
                )
            )
            if exclude_id is not None:
                q = q.filter(ActivityLog.id != exclude_id)
            return q.first()
        except SQLAlchemyError as exc:
            logger.exception("Running timer check failed")
            self.db.rollback()
            raise StorageError("Unable to verify time overlaps") from exc

    def query(
        self,
        start_from: datetime | None = None,
        start_to: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ActivityLog]:
        try:
            q = self.db.query(ActivityLog).options(
                joinedload(ActivityLog.activity), joinedload(ActivityLog.pauses)
            )
            if start_from is not None:
                q = q.filter(ActivityLog.start_time >= start_from)
            if start_to is not None:
                q = q.filter(ActivityLog.start_time <= start_to)
            q = q.order_by(ActivityLog.start_time.desc()).offset(offset)
            if limit is not None:
                q = q.limit(limit)
            return q.all()
        except SQLAlchemyError as exc:
            logger.exception("Error fetching activity logs")
            self.db.rollback()
            raise StorageError("Failed to fetch activity logs") from exc

    # -------- writes --------

    def lock_intervals(self) -> IntervalGuard:
        """
        Serialize interval writes. Take this before the overlap checks and
        call ``bump()`` on the result before committing.
        """
        try:
            guard = (
                self.db.query(IntervalGuard)
                .filter(IntervalGuard.id == INTERVAL_GUARD_ID)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception("Error locking interval guard")
            self.db.rollback()
            raise StorageError("Unable to verify time overlaps") from exc
        if guard is None:
            # schema created without the seed row; a racing insert fails on the pk
            guard = IntervalGuard(id=INTERVAL_GUARD_ID, writes=0)
            self.db.add(guard)
        return guard

    def add(self, entry: ActivityLog | Activity) -> None:
        self.db.add(entry)

    def delete(self, entry: ActivityLog | Activity) -> None:
        self.db.delete(entry)

    def commit(self, *, on_conflict: Callable[[], TrackerError] | None = None) -> None:
        """
        Commit the unit of work. A lost optimistic-lock race becomes
        ``ConcurrentModificationError``; a unique-constraint hit becomes
        ``on_conflict()`` when given.
        """
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning("Concurrent modification detected: %s", exc)
            raise ConcurrentModificationError() from exc
        except IntegrityError as exc:
            self.db.rollback()
            if on_conflict is not None:
                logger.info("Integrity conflict: %s", exc.orig)
                raise on_conflict() from exc
            logger.exception("Integrity error on commit")
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Commit failed")
            raise StorageError() from exc

    def refresh(self, entry: ActivityLog | Activity) -> None:
        self.db.refresh(entry)
