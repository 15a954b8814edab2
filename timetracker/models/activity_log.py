import enum
import uuid
from datetime import datetime

from sqlalchemy import DDL, Enum, Float, ForeignKey, Index, Integer, Uuid, event, func
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timetracker.db.base import Base
from timetracker.db.types import UTCDateTime


class EntryType(str, enum.Enum):
    MANUAL = "manual"
    TIMER = "timer"


class EntryStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


OPEN_STATUSES = (EntryStatus.ACTIVE, EntryStatus.PAUSED)

# value held by ``timer_slot`` while a session is active or paused
OPEN_TIMER_SLOT = 1

# primary key of the single interval_guard row
INTERVAL_GUARD_ID = 1


def _enum_values(cls: type[enum.Enum]) -> list[str]:
    return [m.value for m in cls]


class ActivityLog(Base):
    """
    One tracked interval. Timer entries ("sessions") move through
    active/paused/completed; manual entries are born completed.
    """

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("activities.id", ondelete="CASCADE"), index=True
    )

    entry_type: Mapped[EntryType] = mapped_column(
        Enum(EntryType, name="entry_type", values_callable=_enum_values),
        nullable=False,
    )
    status: Mapped[EntryStatus] = mapped_column(
        Enum(EntryStatus, name="entry_status", values_callable=_enum_values),
        nullable=False,
        default=EntryStatus.ACTIVE,
    )

    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_heartbeat: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # net seconds; NULL until a session completes
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    # 1 while active/paused, NULL otherwise; the unique index admits one open timer
    timer_slot: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), onupdate=func.now()
    )

    activity: Mapped["Activity"] = relationship(back_populates="logs")  # noqa: F821

    pauses: Mapped[list["PauseInterval"]] = relationship(
        back_populates="log",
        cascade="all, delete-orphan",
        order_by="PauseInterval.position",
        collection_class=ordering_list("position"),
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES


class PauseInterval(Base):
    """
    A stretch excluded from a session's duration.
    Opened on pause, closed on resume; crash recovery inserts closed ones.
    """

    __tablename__ = "pause_intervals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    log_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("activity_logs.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    pause_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    resume_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    log: Mapped["ActivityLog"] = relationship(back_populates="pauses")


Index(
    "ix_activity_logs_status_range",
    ActivityLog.status,
    ActivityLog.start_time,
    ActivityLog.end_time,
)


class IntervalGuard(Base):
    """
    Single row taken ``FOR UPDATE`` and bumped by every manual-entry write,
    so overlap checks run one at a time. Where row locks are unavailable
    (SQLite) the version column turns a racing write into a stale update.
    """

    __tablename__ = "interval_guard"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    writes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def bump(self) -> None:
        self.writes = (self.writes or 0) + 1


event.listen(
    IntervalGuard.__table__,
    "after_create",
    DDL(
        "INSERT INTO interval_guard (id, writes, version) "
        f"VALUES ({INTERVAL_GUARD_ID}, 0, 1)"
    ),
)
