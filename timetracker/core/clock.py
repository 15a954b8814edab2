"""Clock sources for the timer engine; swap in ``FrozenClock`` for deterministic runs."""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.set(now)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        if now.tzinfo is None:
            raise ValueError("FrozenClock requires timezone-aware datetime")
        self._now = now.astimezone(timezone.utc)

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by ``timedelta(**kwargs)`` and return the new instant."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


system_clock = SystemClock()


def get_clock() -> Clock:
    return system_clock
