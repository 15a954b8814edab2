import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("timetracker.errors")


class TrackerError(Exception):
    """
    Base for every failure the service reports on purpose.
    ``context`` is merged into the response body so clients can self-resolve.
    """

    status_code = 400
    code = "error"
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, **context: Any):
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)

    def to_payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "code": self.code, **self.context}


# -------- validation (caller can fix the input and retry) --------


class ValidationError(TrackerError):
    status_code = 400
    code = "validation_error"


class InvalidTimeRangeError(ValidationError):
    code = "invalid_time_range"
    default_detail = "Invalid time range."


class LookbackExceededError(ValidationError):
    code = "lookback_exceeded"
    default_detail = (
        "Grace period ended. You can only log activities for Today or Yesterday."
    )


class WrongEntryKindError(ValidationError):
    code = "wrong_entry_kind"
    default_detail = "Invalid operation. This is a manual entry, not a live timer."


# -------- not found --------


class NotFoundError(TrackerError):
    status_code = 404
    code = "not_found"


class EntryNotFoundError(NotFoundError):
    default_detail = "Activity Log not found."


class ActivityNotFoundError(NotFoundError):
    default_detail = "Activity not found"


class InvalidReferenceError(NotFoundError):
    code = "invalid_reference"
    default_detail = "Invalid Activity ID or Activity not found"


# -------- conflicts with current state --------


class ConflictError(TrackerError):
    status_code = 409
    code = "conflict"


class AlreadyPausedError(ConflictError):
    code = "already_paused"
    default_detail = "Timer is already paused."


class AlreadyActiveError(ConflictError):
    code = "already_active"
    default_detail = "Timer is already active."


class AlreadyStoppedError(ConflictError):
    code = "already_stopped"
    default_detail = "Timer is already stopped."


class NoPauseToResumeError(ConflictError):
    code = "no_pause_to_resume"
    default_detail = "No open pause exists for this timer, cannot resume."


class MustResumeBeforeStopError(ConflictError):
    code = "must_resume_before_stop"
    default_detail = "Timer is paused. Resume it before stopping."


class TimerAlreadyRunningError(ConflictError):
    code = "timer_already_running"
    default_detail = "A timer is already running, please stop it first."


class OverlapDetectedError(ConflictError):
    code = "overlap_detected"
    default_detail = "Time overlap detected."


class ConcurrentModificationError(ConflictError):
    code = "concurrent_modification"
    default_detail = "The entry was changed by another request. Reload and retry."


class DuplicateActivityError(ConflictError):
    code = "duplicate_activity"
    default_detail = "An activity with this name already exists"


# -------- storage --------


class StorageError(TrackerError):
    status_code = 500
    code = "storage_error"
    default_detail = "Storage failure"


def tracker_error_handler(request: Request, exc: TrackerError):
    if isinstance(exc, StorageError):
        # cause already logged where it was caught; keep the body opaque
        logger.error("StorageError path=%s", request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal Server Error", "code": exc.code},
        )
    logger.info("%s %s path=%s", exc.code, exc.status_code, request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.info("HTTPException %s path=%s", exc.status_code, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("ValidationError path=%s", request.url.path)
    return JSONResponse(status_code=422, content={"detail": "Invalid request"})


def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("UnhandledException path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
