import uuid
from datetime import datetime

from sqlalchemy import Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timetracker.db.base import Base
from timetracker.db.types import UTCDateTime


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), onupdate=func.now()
    )

    logs: Mapped[list["ActivityLog"]] = relationship(  # noqa: F821
        back_populates="activity",
        cascade="all, delete-orphan",
        order_by="desc(ActivityLog.start_time)",
    )


# "Gym" and "gym" are the same activity
Index("uq_activities_name_ci", func.lower(Activity.name), unique=True)
