import logging

from fastapi import APIRouter, Depends

from timetracker.core.config import settings
from timetracker.core.deps import get_store
from timetracker.core.errors import (
    ActivityNotFoundError,
    DuplicateActivityError,
    ValidationError,
)
from timetracker.core.store import IntervalStore
from timetracker.models.activity import Activity
from timetracker.schemas.activity import ActivityCreate, ActivityOut, ActivityUpdate

logger = logging.getLogger("timetracker.activities")

router = APIRouter(prefix="/activities", tags=["activities"])


def _clean_name(name: str) -> str:
    return name.strip()[: settings.MAX_ACTIVITY_NAME_LENGTH]


def _require_activity(store: IntervalStore, activity_id: str) -> Activity:
    activity = store.get_activity(activity_id)
    if not activity:
        raise ActivityNotFoundError()
    return activity


@router.get("", response_model=list[ActivityOut])
def list_activities(store: IntervalStore = Depends(get_store)):
    return [
        ActivityOut(id=str(a.id), name=a.name, color=a.color, log_count=count)
        for a, count in store.activities_with_log_counts()
    ]


@router.post("", response_model=ActivityOut, status_code=201)
def create_activity(payload: ActivityCreate, store: IntervalStore = Depends(get_store)):
    name = _clean_name(payload.name)
    if not name:
        raise ValidationError("Activity name is required")

    activity = Activity(name=name, color=payload.color or settings.DEFAULT_ACTIVITY_COLOR)
    store.add(activity)
    store.commit(on_conflict=DuplicateActivityError)
    logger.info("Activity %s created name=%r", activity.id, activity.name)
    return ActivityOut(id=str(activity.id), name=activity.name, color=activity.color)


@router.patch("/{activity_id}", response_model=ActivityOut)
def update_activity(
    activity_id: str,
    payload: ActivityUpdate,
    store: IntervalStore = Depends(get_store),
):
    activity = _require_activity(store, activity_id)

    if payload.name is not None:
        name = _clean_name(payload.name)
        if not name:
            raise ValidationError("Activity name cannot be empty")
        activity.name = name
    if payload.color:
        activity.color = payload.color

    store.commit(on_conflict=DuplicateActivityError)
    store.refresh(activity)
    return ActivityOut(
        id=str(activity.id),
        name=activity.name,
        color=activity.color,
        log_count=len(activity.logs),
    )


@router.delete("/{activity_id}")
def delete_activity(activity_id: str, store: IntervalStore = Depends(get_store)):
    activity = _require_activity(store, activity_id)
    store.delete(activity)
    store.commit()
    logger.info("Activity %s deleted", activity_id)
    return {"ok": True, "message": "Activity deleted successfully"}
