from datetime import timedelta

import pytest

from conftest import T0
from timetracker.core import pause_ledger
from timetracker.core.errors import NoPauseToResumeError
from timetracker.models.activity_log import PauseInterval


def _pause(start_min, end_min=None):
    return PauseInterval(
        pause_time=T0 + timedelta(minutes=start_min),
        resume_time=T0 + timedelta(minutes=end_min) if end_min is not None else None,
    )


def test_net_duration_without_pauses_is_the_span():
    assert pause_ledger.net_duration(T0, T0 + timedelta(minutes=10), []) == 600


def test_net_duration_subtracts_closed_pauses():
    pauses = [_pause(2, 5), _pause(6, 6)]
    end = T0 + timedelta(minutes=7)
    assert pause_ledger.net_duration(T0, end, pauses) == 240


def test_open_pause_contributes_nothing():
    pauses = [_pause(2, 3), _pause(4)]
    end = T0 + timedelta(minutes=10)
    assert pause_ledger.net_duration(T0, end, pauses) == 540


def test_net_duration_floors_at_zero():
    # pauses longer than the span can come from a clock jump
    pauses = [_pause(-10, 20)]
    assert pause_ledger.net_duration(T0, T0 + timedelta(minutes=5), pauses) == 0


def test_net_duration_rounds_to_nearest_second():
    end = T0 + timedelta(seconds=90, milliseconds=500)
    pauses = [PauseInterval(pause_time=T0, resume_time=T0 + timedelta(seconds=30))]
    assert pause_ledger.net_duration(T0, end, pauses) == 61


def test_net_duration_never_exceeds_span():
    end = T0 + timedelta(seconds=599, milliseconds=600)
    assert pause_ledger.net_duration(T0, end, []) <= 599.6


def test_begin_pause_rejects_second_open_interval():
    pauses = []
    pause_ledger.begin_pause(pauses, T0)
    with pytest.raises(ValueError):
        pause_ledger.begin_pause(pauses, T0 + timedelta(minutes=1))
    assert len(pauses) == 1


def test_end_pause_closes_the_last_open_interval():
    pauses = [_pause(0, 1)]
    pause_ledger.begin_pause(pauses, T0 + timedelta(minutes=2))
    closed = pause_ledger.end_pause(pauses, T0 + timedelta(minutes=4))
    assert closed is pauses[-1]
    assert closed.resume_time == T0 + timedelta(minutes=4)
    assert pause_ledger.open_pause(pauses) is None


def test_end_pause_without_open_interval():
    with pytest.raises(NoPauseToResumeError):
        pause_ledger.end_pause([_pause(0, 1)], T0 + timedelta(minutes=2))
    with pytest.raises(NoPauseToResumeError):
        pause_ledger.end_pause([], T0)


def test_insert_gap_requires_closed_history():
    pauses = [_pause(0)]
    with pytest.raises(ValueError):
        pause_ledger.insert_gap(pauses, T0, T0 + timedelta(minutes=10))


def test_zero_length_pause_does_not_change_duration():
    end = T0 + timedelta(minutes=10)
    assert pause_ledger.net_duration(T0, end, [_pause(5, 5)]) == 600
