"""
Location API: report the current position (logs it, then evaluates geofenced reminders) and
manage location reminders. Both tables arrive in their own migrations; 501 until provisioned.
"""
import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.api.deps import get_notifier
from gtms.config import settings
from gtms.core.constants import DEFAULT_LOCATION_RADIUS_M, REMINDER_TYPE_LABELS, TRIGGER_LABELS, display_label
from gtms.core.errors import FeatureUnavailable, is_missing_schema_error
from gtms.core.security import CurrentUser, get_current_patient
from gtms.db.session import get_db
from gtms.models.location import LocationReminder, UserLocation
from gtms.services.location import evaluate_location
from gtms.services.notifier import Notifier

router = APIRouter()
logger = logging.getLogger(__name__)


class LocationReport(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: float | None = Field(None, ge=0)
    address: str | None = Field(None, max_length=512)


class LocationReminderBody(BaseModel):
    location_name: str = Field(..., min_length=1, max_length=255)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius: int = Field(DEFAULT_LOCATION_RADIUS_M, gt=0, le=100_000)
    reminder_type: str | None = Field(None, pattern="^(medication|appointment|general)$")
    reminder_message: str = Field(..., min_length=1)
    trigger_type: str = Field("enter", pattern="^(enter|exit|both)$")


def _commit_or_unavailable(db: Session, row, feature: str) -> str:
    try:
        db.add(row)
        db.commit()
        return row.id
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if is_missing_schema_error(e):
            raise FeatureUnavailable(feature)
        raise


@router.post("/location")
def report_location(
    body: LocationReport,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    notifier: Notifier = Depends(get_notifier),
) -> dict[str, Any]:
    location_id = _commit_or_unavailable(
        db,
        UserLocation(
            user_id=user.user_id,
            latitude=body.latitude,
            longitude=body.longitude,
            accuracy=body.accuracy,
            address=body.address,
        ),
        "Location tracking",
    )
    # Sync route: FastAPI runs it in the threadpool, so the push fan-out gets a loop of its own.
    triggered = asyncio.run(evaluate_location(db, notifier, user.user_id, body.latitude, body.longitude))
    if triggered:
        logger.info("Location report %s triggered %s reminders for user %s", location_id, triggered, user.user_id)
    return {"message": "Location recorded", "location_id": location_id, "triggered_reminders": triggered}


@router.post("/location-reminders")
def add_location_reminder(
    body: LocationReminderBody,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
) -> dict[str, Any]:
    reminder_id = _commit_or_unavailable(
        db, LocationReminder(user_id=user.user_id, is_active=True, **body.model_dump()), "Location reminders"
    )
    return {"message": "Location reminder added", "reminder_id": reminder_id}


@router.get("/location-reminders")
def list_location_reminders(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
) -> dict[str, Any]:
    try:
        rows = (
            db.query(LocationReminder)
            .filter(LocationReminder.user_id == user.user_id, LocationReminder.is_active.is_(True))
            .order_by(LocationReminder.created_at.desc())
            .all()
        )
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if is_missing_schema_error(e):
            raise FeatureUnavailable("Location reminders")
        raise
    return jsonable_encoder({
        "location_reminders": [
            {
                "id": r.id,
                "location_name": r.location_name,
                "latitude": r.latitude,
                "longitude": r.longitude,
                "radius": r.radius,
                "reminder_type": r.reminder_type,
                "reminder_type_display": display_label(REMINDER_TYPE_LABELS, settings.locale, r.reminder_type),
                "reminder_message": r.reminder_message,
                "trigger_type": r.trigger_type,
                "trigger_type_display": display_label(TRIGGER_LABELS, settings.locale, r.trigger_type),
                "is_inside": r.is_inside,
                "last_triggered_at": r.last_triggered_at,
                "created_at": r.created_at,
            }
            for r in rows
        ]
    })
