"""
Medication adherence predicates shared by the missed-medication check and manual usage entry.

A reminder occurrence counts as done for a calendar date when a "taken" usage record exists for
(reminder, date). Absence of that record past the grace window is what "missed" means.
"""
from datetime import date, datetime, time, timedelta

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from gtms.models.medication import USAGE_TAKEN, MedicationReminder, MedicationUsageRecord


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def taken_record_exists(reminder_id, day: date):
    """SQL EXISTS clause: a taken usage record for this reminder (id or column) on this date."""
    start, end = day_bounds(day)
    return exists().where(
        MedicationUsageRecord.reminder_id == reminder_id,
        MedicationUsageRecord.status == USAGE_TAKEN,
        MedicationUsageRecord.scheduled_time >= start,
        MedicationUsageRecord.scheduled_time < end,
    )


def has_taken_record(db: Session, reminder_id: str, day: date) -> bool:
    return bool(db.execute(select(taken_record_exists(reminder_id, day))).scalar())


def parse_days_of_week(raw: str | None) -> set[int] | None:
    """CSV "0,2,4" -> {0, 2, 4} (0 = Monday). None/empty means every day."""
    if not raw or not raw.strip():
        return None
    days = set()
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and 0 <= int(part) <= 6:
            days.add(int(part))
    return days


def is_scheduled_on(reminder: MedicationReminder, day: date) -> bool:
    """Reminder is active, inside its date range and configured for this weekday."""
    if not reminder.is_active:
        return False
    if reminder.start_date and day < reminder.start_date:
        return False
    if reminder.end_date and day > reminder.end_date:
        return False
    days = parse_days_of_week(reminder.days_of_week)
    return days is None or day.weekday() in days


def is_overdue(reminder_time: time, now: datetime, grace_minutes: int) -> bool:
    """True once now is at least grace_minutes past today's reminder time."""
    due = datetime.combine(now.date(), reminder_time) + timedelta(minutes=grace_minutes)
    return now >= due
