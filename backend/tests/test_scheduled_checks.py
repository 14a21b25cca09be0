import asyncio
from datetime import datetime, time, timedelta
from time import sleep

from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from gtms.models.alert import Alert
from gtms.models.appointment import Appointment
from gtms.models.iop_measurement import IopMeasurement
from gtms.models.medication import Medication, MedicationInventory, MedicationReminder, MedicationUsageRecord
from gtms.models.notification import Notification
from gtms.models.push_subscription import PushSubscription
from gtms.scheduler import high_iop_job
from gtms.scheduler.appointment_reminder_job import run_appointment_reminder_check
from gtms.scheduler.high_iop_job import run_high_iop_check
from gtms.scheduler.low_inventory_job import run_low_inventory_check
from gtms.scheduler.missed_medication_job import run_missed_medication_check
from gtms.services.adherence import has_taken_record, is_overdue, parse_days_of_week
from gtms.services.appointment_messages import build_appointment_reminder

from conftest import PATIENT_ID

# Monday
NOW = datetime(2026, 10, 19, 8, 20)
TODAY = NOW.date()


def _add(db, *rows):
    db.add_all(rows)
    db.commit()
    return rows


def _notifications(db, notification_type=None):
    q = db.query(Notification)
    if notification_type:
        q = q.filter(Notification.notification_type == notification_type)
    return q.all()


def _medication(db, name="Latanoprost"):
    (med,) = _add(db, Medication(name=name))
    return med


def _reminder(db, med, at=time(8, 0), **kwargs):
    (reminder,) = _add(db, MedicationReminder(patient_id=PATIENT_ID, medication_id=med.id, reminder_time=at, **kwargs))
    return reminder


# --- High IOP ---


def test_high_iop_creates_one_alert_and_notification(db, notifier):
    _add(db, IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY, left_eye_iop=22, right_eye_iop=19))

    assert asyncio.run(run_high_iop_check(db, notifier, now=NOW)) == 1

    alerts = db.query(Alert).all()
    assert len(alerts) == 1
    assert alerts[0].alert_type == "high_iop"
    assert alerts[0].severity == "high"
    assert alerts[0].status == "pending"
    notifications = _notifications(db)
    assert len(notifications) == 1
    assert notifications[0].notification_type == "health_alert"
    assert notifications[0].priority == "high"
    assert notifications[0].related_entity_type == "iop_measurements"


def test_normal_or_old_iop_is_ignored(db, notifier):
    _add(
        db,
        IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY, left_eye_iop=20, right_eye_iop=19),
        IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY, left_eye_iop=21, right_eye_iop=21),
        IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY - timedelta(days=1), left_eye_iop=30),
    )

    assert asyncio.run(run_high_iop_check(db, notifier, now=NOW)) == 0
    assert db.query(Alert).count() == 0
    assert _notifications(db) == []


def test_one_failing_row_does_not_stop_the_scan(db, notifier, monkeypatch):
    _add(
        db,
        IopMeasurement(patient_id="p-bad", measurement_date=TODAY, left_eye_iop=25),
        IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY, right_eye_iop=26),
    )
    real_create_alert = high_iop_job.create_alert

    def flaky(db, patient_id, *args, **kwargs):
        if patient_id == "p-bad":
            raise RuntimeError("storage hiccup")
        return real_create_alert(db, patient_id, *args, **kwargs)

    monkeypatch.setattr(high_iop_job, "create_alert", flaky)

    assert asyncio.run(run_high_iop_check(db, notifier, now=NOW)) == 2
    assert [n.user_id for n in _notifications(db)] == [PATIENT_ID]


def test_high_iop_pushes_to_subscribed_patient(db, notifier, sender):
    _add(
        db,
        IopMeasurement(patient_id=PATIENT_ID, measurement_date=TODAY, left_eye_iop=28),
        PushSubscription(user_id=PATIENT_ID, endpoint="https://push.example/1", p256dh_key="k", auth_key="a"),
    )

    asyncio.run(run_high_iop_check(db, notifier, now=NOW))

    assert len(sender.calls) == 1
    db.expire_all()
    assert _notifications(db)[0].push_sent is True


def test_high_iop_job_leaves_the_event_loop_free(engine, db, notifier):
    today = datetime.now().date()
    _add(db, *(IopMeasurement(patient_id=PATIENT_ID, measurement_date=today, left_eye_iop=25) for _ in range(3)))

    def slow_statement(*args):
        sleep(0.02)

    async def scan_alongside_ticker():
        ticks = 0
        # The scheduler runs jobs on worker threads; to_thread stands in for its executor.
        scan = asyncio.create_task(
            asyncio.to_thread(high_iop_job.run_high_iop_job, notifier, sessionmaker(bind=engine))
        )
        while not scan.done():
            await asyncio.sleep(0.005)
            ticks += 1
        return await scan, ticks

    event.listen(engine, "before_cursor_execute", slow_statement)
    try:
        processed, ticks = asyncio.run(scan_alongside_ticker())
    finally:
        event.remove(engine, "before_cursor_execute", slow_statement)

    assert processed == 3
    assert ticks > 10
    assert db.query(Alert).count() == 3


# --- Missed medication ---


def test_missed_medication_after_grace_window(db, notifier):
    med = _medication(db)
    reminder = _reminder(db, med)

    assert asyncio.run(run_missed_medication_check(db, notifier, now=datetime(2026, 10, 19, 8, 15))) == 1

    alert = db.query(Alert).one()
    assert alert.alert_type == "missed_medication"
    assert alert.severity == "medium"
    assert alert.related_entity_id == reminder.id
    notification = _notifications(db)[0]
    assert notification.notification_type == "medication_reminder"
    assert notification.priority == "high"
    assert notification.action_url == "/medication-tracker"
    assert "Latanoprost" in notification.body


def test_taken_record_today_suppresses_missed(db, notifier):
    med = _medication(db)
    reminder = _reminder(db, med)
    _add(
        db,
        MedicationUsageRecord(
            reminder_id=reminder.id,
            patient_id=PATIENT_ID,
            scheduled_time=datetime(2026, 10, 19, 8, 0),
            actual_time=datetime(2026, 10, 19, 8, 2),
            status="taken",
        ),
    )

    assert has_taken_record(db, reminder.id, TODAY) is True
    assert asyncio.run(run_missed_medication_check(db, notifier, now=NOW)) == 0
    assert db.query(Alert).count() == 0


def test_yesterdays_or_skipped_record_does_not_suppress(db, notifier):
    med = _medication(db)
    reminder = _reminder(db, med)
    _add(
        db,
        MedicationUsageRecord(
            reminder_id=reminder.id, patient_id=PATIENT_ID, scheduled_time=datetime(2026, 10, 18, 8, 0), status="taken"
        ),
        MedicationUsageRecord(
            reminder_id=reminder.id, patient_id=PATIENT_ID, scheduled_time=datetime(2026, 10, 19, 8, 0), status="skipped"
        ),
    )

    assert asyncio.run(run_missed_medication_check(db, notifier, now=NOW)) == 1


def test_not_missed_inside_grace_window(db, notifier):
    _reminder(db, _medication(db))
    assert asyncio.run(run_missed_medication_check(db, notifier, now=datetime(2026, 10, 19, 8, 14))) == 0


def test_missed_respects_weekdays_and_date_range(db, notifier):
    med = _medication(db)
    _reminder(db, med, days_of_week="1,3")  # Tue, Thu
    _reminder(db, med, start_date=TODAY + timedelta(days=1))
    _reminder(db, med, end_date=TODAY - timedelta(days=1))
    _reminder(db, med, is_active=False)
    _reminder(db, med, days_of_week="0")  # Monday: fires

    assert asyncio.run(run_missed_medication_check(db, notifier, now=NOW)) == 1


def test_adherence_helpers():
    assert parse_days_of_week("") is None
    assert parse_days_of_week(None) is None
    assert parse_days_of_week("0, 2,4,9,x") == {0, 2, 4}
    assert is_overdue(time(8, 0), datetime(2026, 10, 19, 8, 15), 15) is True
    assert is_overdue(time(8, 0), datetime(2026, 10, 19, 8, 14, 59), 15) is False


# --- Low inventory ---


def test_low_inventory_notifies_without_alert(db, notifier):
    med = _medication(db, "Timolol")
    _add(
        db,
        MedicationInventory(patient_id=PATIENT_ID, medication_id=med.id, expected_end_date=TODAY + timedelta(days=2)),
        MedicationInventory(patient_id=PATIENT_ID, medication_id=med.id, expected_end_date=TODAY + timedelta(days=5)),
        MedicationInventory(
            patient_id=PATIENT_ID, medication_id=med.id, expected_end_date=TODAY, is_depleted=True
        ),
    )

    assert asyncio.run(run_low_inventory_check(db, notifier, now=NOW)) == 1

    assert db.query(Alert).count() == 0
    (notification,) = _notifications(db, "medication_inventory")
    assert notification.priority == "high"
    assert "Timolol" in notification.body
    assert "2 days" in notification.body


def test_low_inventory_includes_lookahead_boundary(db, notifier):
    med = _medication(db)
    _add(db, MedicationInventory(patient_id=PATIENT_ID, medication_id=med.id, expected_end_date=TODAY + timedelta(days=3)))
    assert asyncio.run(run_low_inventory_check(db, notifier, now=NOW)) == 1


# --- Appointments ---


def _appointment(db, day, status="scheduled"):
    (appointment,) = _add(
        db,
        Appointment(
            patient_id=PATIENT_ID,
            doctor_name="Dr. Somchai",
            appointment_date=day,
            appointment_time=time(10, 30),
            appointment_status=status,
        ),
    )
    return appointment


def test_tomorrow_appointment_reminder(db, notifier):
    _appointment(db, TODAY + timedelta(days=1))
    _appointment(db, TODAY + timedelta(days=1), status="cancelled")
    _appointment(db, TODAY + timedelta(days=2))

    assert asyncio.run(run_appointment_reminder_check(db, notifier, now=datetime(2026, 10, 19, 18, 0))) == 1

    (notification,) = _notifications(db, "appointment_reminder")
    assert notification.title == "Appointment tomorrow"
    assert notification.priority == "high"
    assert "Dr. Somchai" in notification.body
    assert notification.action_url == "/appointments"


def test_today_appointment_only_inside_morning_window(db, notifier):
    _appointment(db, TODAY)

    assert asyncio.run(run_appointment_reminder_check(db, notifier, now=datetime(2026, 10, 19, 18, 0))) == 0
    assert asyncio.run(run_appointment_reminder_check(db, notifier, now=datetime(2026, 10, 19, 9, 0))) == 1

    (notification,) = _notifications(db, "appointment_reminder")
    assert notification.title == "Appointment today"
    assert notification.priority == "high"


def test_appointment_reminder_message_by_distance():
    appointment = Appointment(
        patient_id=PATIENT_ID,
        appointment_date=TODAY + timedelta(days=4),
        appointment_time=time(14, 0),
        appointment_type="follow-up",
    )

    title, body, priority = build_appointment_reminder(appointment, TODAY)
    assert title == "Appointment in 4 days"
    assert body == "In 4 days you have an appointment with your doctor on 2026-10-23"
    assert priority == "medium"

    appointment.appointment_date = TODAY
    assert build_appointment_reminder(appointment, TODAY) == (
        "Appointment today",
        "Today you have an appointment with your doctor at 14:00",
        "high",
    )
