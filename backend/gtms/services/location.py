"""
Location Trigger Evaluator: match a reported coordinate against the user's active geofenced
reminders and notify on a match.

Distance is great-circle (Haversine) on a sphere of radius 6,371,000 m. is_inside is tracked per
reminder on every report so exit triggers and the once_per_entry policy have a previous state.
"""
import logging
import math
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.core.constants import (
    EARTH_RADIUS_M,
    LOCATION_REFIRE_ONCE_PER_ENTRY,
    TYPE_LOCATION_REMINDER,
)
from gtms.core.errors import is_missing_schema_error
from gtms.models.location import LocationReminder
from gtms.services.notifier import Notifier

logger = logging.getLogger(__name__)

TRIGGER_ENTER = "enter"
TRIGGER_EXIT = "exit"
TRIGGER_BOTH = "both"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two lat/long points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def should_fire(trigger_type: str, was_inside: bool, inside: bool, policy: str) -> bool:
    entered = inside and (policy != LOCATION_REFIRE_ONCE_PER_ENTRY or not was_inside)
    exited = was_inside and not inside
    if trigger_type == TRIGGER_EXIT:
        return exited
    if trigger_type == TRIGGER_BOTH:
        return entered or exited
    return entered


async def evaluate_location(
    db: Session,
    notifier: Notifier,
    user_id: str,
    latitude: float,
    longitude: float,
    policy: str | None = None,
) -> int:
    """Fire notifications for matching reminders. Returns how many fired; 0 when reminders are not provisioned."""
    policy = policy or notifier.factory.config.location_refire_policy
    try:
        reminders = (
            db.query(LocationReminder)
            .filter(LocationReminder.user_id == user_id, LocationReminder.is_active.is_(True))
            .all()
        )
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if is_missing_schema_error(e):
            logger.debug("location_reminders table not provisioned; skipping location check")
            return 0
        raise

    # Snapshot before any await; notifier commits expire loaded rows
    snapshot = [
        (r.id, r.location_name, r.latitude, r.longitude, r.radius, r.trigger_type, bool(r.is_inside), r.reminder_type, r.reminder_message)
        for r in reminders
    ]
    fired = 0
    for reminder_id, name, lat, lon, radius, trigger_type, was_inside, reminder_type, message in snapshot:
        distance = haversine_distance(latitude, longitude, lat, lon)
        inside = distance <= radius
        fire = should_fire(trigger_type, was_inside, inside, policy)
        if fire:
            result = await notifier.notify(
                db,
                user_id,
                TYPE_LOCATION_REMINDER,
                f"📍 {name}",
                message,
                "medium",
                entity_type="location_reminders",
                entity_id=reminder_id,
                metadata={
                    "location_name": name,
                    "reminder_type": reminder_type,
                    "distance": round(distance),
                    "trigger": "exit" if was_inside and not inside else "enter",
                },
            )
            fired += 1 if result else 0
        values = {"is_inside": inside}
        if fire:
            values["last_triggered_at"] = datetime.now(timezone.utc)
        try:
            db.query(LocationReminder).filter(LocationReminder.id == reminder_id).update(
                values, synchronize_session=False
            )
            db.commit()
        except Exception as e:
            logger.warning("Could not update state of location reminder %s: %s", reminder_id, e)
            db.rollback()
    return fired
