"""Runs at 09:00 and 18:00: remind about tomorrow's appointments, and today's inside the morning window."""
import asyncio
import logging
from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session, sessionmaker

from gtms.core.constants import APPOINTMENT_MORNING_WINDOW, TYPE_APPOINTMENT_REMINDER
from gtms.db.session import SessionLocal
from gtms.models.appointment import APPOINTMENT_SCHEDULED, Appointment
from gtms.services.appointment_messages import build_appointment_reminder
from gtms.services.notifier import Notifier

logger = logging.getLogger(__name__)


def in_morning_window(now: datetime) -> bool:
    start, end = (time.fromisoformat(t) for t in APPOINTMENT_MORNING_WINDOW)
    return start <= now.time() <= end


def _scheduled_on(db: Session, day) -> list[Appointment]:
    return (
        db.query(Appointment)
        .filter(Appointment.appointment_status == APPOINTMENT_SCHEDULED, Appointment.appointment_date == day)
        .all()
    )


async def run_appointment_reminder_check(db: Session, notifier: Notifier, now: datetime | None = None) -> int:
    now = now or datetime.now()
    today = now.date()
    appointments = _scheduled_on(db, today + timedelta(days=1))
    if in_morning_window(now):
        appointments += _scheduled_on(db, today)

    messages = []
    for a in appointments:
        title, body, priority = build_appointment_reminder(a, today)
        metadata = {
            "appointment_id": a.id,
            "appointment_date": a.appointment_date,
            "appointment_time": a.appointment_time,
            "appointment_type": a.appointment_type,
            "doctor_name": a.doctor_name,
            "notification_type": "reminder",
        }
        messages.append((a.id, a.patient_id, title, body, priority, metadata))

    for appointment_id, patient_id, title, body, priority, metadata in messages:
        try:
            await notifier.notify(
                db,
                patient_id,
                TYPE_APPOINTMENT_REMINDER,
                title,
                body,
                priority,
                entity_type="appointments",
                entity_id=appointment_id,
                action_url="/appointments",
                metadata=metadata,
            )
        except Exception as e:
            logger.exception("Appointment reminder failed for appointment %s: %s", appointment_id, e)
            db.rollback()
    logger.info("Processed %s appointment reminders", len(messages))
    return len(messages)


def run_appointment_reminder_job(notifier: Notifier, session_factory: sessionmaker = SessionLocal) -> int:
    db = session_factory()
    try:
        return asyncio.run(run_appointment_reminder_check(db, notifier))
    finally:
        db.close()
