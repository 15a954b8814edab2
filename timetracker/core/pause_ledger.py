"""
Net-duration arithmetic and the append-only pause history.

A session's pause history is chronological. At most one interval is open
(no ``resume_time``) and, when present, it is the last one. All mutations of
the history go through the helpers below so that rule holds everywhere.
"""

import math
from collections.abc import Iterable, MutableSequence
from datetime import datetime, timedelta
from typing import Protocol

from timetracker.core.errors import NoPauseToResumeError
from timetracker.models.activity_log import PauseInterval


class PauseLike(Protocol):
    pause_time: datetime
    resume_time: datetime | None


def round_half_up(seconds: float) -> int:
    return int(math.floor(seconds + 0.5))


def closed_pause_total(pauses: Iterable[PauseLike]) -> timedelta:
    """Sum of ``resume_time - pause_time`` over closed pauses; open ones count zero."""
    total = timedelta(0)
    for p in pauses:
        if p.pause_time is not None and p.resume_time is not None:
            total += p.resume_time - p.pause_time
    return total


def net_duration(start: datetime, end: datetime, pauses: Iterable[PauseLike]) -> float:
    """
    Seconds between ``start`` and ``end`` minus closed pause gaps, rounded to
    the nearest second and clamped into ``[0, end - start]``.
    """
    span = (end - start).total_seconds()
    net = span - closed_pause_total(pauses).total_seconds()
    seconds = max(0, round_half_up(net))
    return float(min(seconds, max(span, 0.0)))


def open_pause(pauses: MutableSequence[PauseLike]) -> PauseLike | None:
    if pauses and pauses[-1].resume_time is None:
        return pauses[-1]
    return None


def begin_pause(pauses: MutableSequence[PauseInterval], at: datetime) -> PauseInterval:
    if open_pause(pauses) is not None:
        raise ValueError("pause history already has an open interval")
    interval = PauseInterval(pause_time=at, resume_time=None)
    pauses.append(interval)
    return interval


def end_pause(pauses: MutableSequence[PauseInterval], at: datetime) -> PauseInterval:
    interval = open_pause(pauses)
    if interval is None:
        raise NoPauseToResumeError()
    if at < interval.pause_time:
        raise ValueError("resume_time precedes pause_time")
    interval.resume_time = at
    return interval


def insert_gap(
    pauses: MutableSequence[PauseInterval], start: datetime, end: datetime
) -> PauseInterval:
    """Append an already-closed interval, used to carve a crash gap out of a session."""
    if open_pause(pauses) is not None:
        raise ValueError("cannot insert a gap while a pause is open")
    if end < start:
        raise ValueError("gap end precedes gap start")
    interval = PauseInterval(pause_time=start, resume_time=end)
    pauses.append(interval)
    return interval
