"""Runs every 15 min: alert + notify for reminders past their grace window with no taken record today."""
import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from gtms.core.constants import ALERT_MISSED_MEDICATION, MISSED_MEDICATION_GRACE_MINUTES, TYPE_MEDICATION_REMINDER
from gtms.db.session import SessionLocal
from gtms.models.medication import MedicationReminder
from gtms.services.adherence import is_overdue, is_scheduled_on, taken_record_exists
from gtms.services.alerts import create_alert
from gtms.services.notifier import Notifier

logger = logging.getLogger(__name__)


def find_missed_reminders(db: Session, now: datetime) -> list[MedicationReminder]:
    """Active reminders due today, past the grace window, with no taken record for today."""
    today = now.date()
    candidates = (
        db.query(MedicationReminder)
        .filter(
            MedicationReminder.is_active.is_(True),
            ~taken_record_exists(MedicationReminder.id, today),
        )
        .all()
    )
    return [
        r
        for r in candidates
        if is_scheduled_on(r, today) and is_overdue(r.reminder_time, now, MISSED_MEDICATION_GRACE_MINUTES)
    ]


async def run_missed_medication_check(db: Session, notifier: Notifier, now: datetime | None = None) -> int:
    now = now or datetime.now()
    missed = find_missed_reminders(db, now)
    snapshot = [
        (r.id, r.patient_id, r.medication.name if r.medication else "medication", r.reminder_time.strftime("%H:%M"))
        for r in missed
    ]
    for reminder_id, patient_id, medication_name, scheduled in snapshot:
        message = f"You have not taken {medication_name} yet (scheduled {scheduled})"
        try:
            create_alert(
                db, patient_id, ALERT_MISSED_MEDICATION, "medium", message, "medication_reminders", reminder_id
            )
            await notifier.notify(
                db,
                patient_id,
                TYPE_MEDICATION_REMINDER,
                "Medication not taken yet",
                message,
                "high",
                entity_type="medication_reminders",
                entity_id=reminder_id,
                action_url="/medication-tracker",
                metadata={
                    "reminder_id": reminder_id,
                    "medication_name": medication_name,
                    "scheduled_time": scheduled,
                    "sound_enabled": True,
                    "vibration_enabled": True,
                },
            )
        except Exception as e:
            logger.exception("Missed medication check failed for reminder %s: %s", reminder_id, e)
            db.rollback()
    logger.info("Processed %s missed medication reminders", len(snapshot))
    return len(snapshot)


def run_missed_medication_job(notifier: Notifier, session_factory: sessionmaker = SessionLocal) -> int:
    db = session_factory()
    try:
        return asyncio.run(run_missed_medication_check(db, notifier))
    finally:
        db.close()
