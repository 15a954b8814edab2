from fastapi import APIRouter, Depends

from timetracker.core.deps import get_timer_session
from timetracker.core.timer_session import TimerSession
from timetracker.schemas.activity_log import ActivityLogOut, ResetOut, entry_out

router = APIRouter(prefix="/timers", tags=["timers"])


@router.get("/current", response_model=ActivityLogOut | None)
def current_timer(timers: TimerSession = Depends(get_timer_session)):
    session = timers.current()
    return entry_out(session) if session else None


@router.post("/start/{activity_id}", response_model=ActivityLogOut, status_code=201)
def start_timer(activity_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.start(activity_id))


@router.patch("/{session_id}/pause", response_model=ActivityLogOut)
def pause_timer(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.pause(session_id))


@router.patch("/{session_id}/resume", response_model=ActivityLogOut)
def resume_timer(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.resume(session_id))


@router.patch("/{session_id}/heartbeat", response_model=ActivityLogOut)
def heartbeat(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.heartbeat(session_id))


@router.patch("/{session_id}/stop", response_model=ActivityLogOut)
def stop_timer(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.stop(session_id))


@router.patch("/{session_id}/recover", response_model=ActivityLogOut)
def recover_timer(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    return entry_out(timers.recover(session_id))


@router.delete("/{session_id}", response_model=ResetOut)
def reset_timer(session_id: str, timers: TimerSession = Depends(get_timer_session)):
    timers.reset(session_id)
    return ResetOut(ok=True, message="Timer discarded successfully")
