import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from timetracker.core.config import settings
from timetracker.core.errors import (
    TrackerError,
    http_exception_handler,
    tracker_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from timetracker.core.logging import configure_logging, new_request_id, request_id_ctx
from timetracker.db.base import Base
from timetracker.db.session import engine
from timetracker.models import activity, activity_log  # noqa: F401  (register tables)
from timetracker.routers.activities import router as activities_router
from timetracker.routers.activity_logs import router as activity_logs_router
from timetracker.routers.timers import router as timers_router

configure_logging()
logger = logging.getLogger("timetracker")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or new_request_id()
        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
            response.headers["x-request-id"] = rid
            return response
        finally:
            request_id_ctx.reset(token)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Time Tracker API started env=%s", settings.ENV)
    yield


app = FastAPI(title="Time Tracker API", lifespan=lifespan)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(activities_router)
app.include_router(activity_logs_router)
app.include_router(timers_router)


app.add_exception_handler(TrackerError, tracker_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/")
def root():
    return {"status": "ok", "docs": "/docs"}
