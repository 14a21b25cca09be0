import asyncio

import pytest
from sqlalchemy.orm import sessionmaker

from gtms.models.location import LocationReminder
from gtms.models.notification import Notification
from gtms.services.location import evaluate_location, haversine_distance, should_fire

from conftest import PATIENT_ID

HOME = (13.0, 100.0)
# ~500 m north of HOME
AWAY = (13.0045, 100.0)


def _reminder(db, trigger_type="enter", radius=100):
    reminder = LocationReminder(
        user_id=PATIENT_ID,
        location_name="Home",
        latitude=HOME[0],
        longitude=HOME[1],
        radius=radius,
        reminder_type="medication",
        reminder_message="Use your evening eye drops",
        trigger_type=trigger_type,
    )
    db.add(reminder)
    db.commit()
    return reminder.id


def _report(db, notifier, point, policy=None):
    return asyncio.run(evaluate_location(db, notifier, PATIENT_ID, point[0], point[1], policy=policy))


def test_haversine():
    assert haversine_distance(*HOME, *HOME) == 0
    assert haversine_distance(*HOME, *AWAY) == pytest.approx(500, abs=5)


def test_fires_inside_radius(db, notifier):
    reminder_id = _reminder(db)

    assert _report(db, notifier, HOME) == 1

    notification = db.query(Notification).one()
    assert notification.notification_type == "location_reminder"
    assert notification.title == "📍 Home"
    assert notification.body == "Use your evening eye drops"
    assert notification.related_entity_id == reminder_id
    db.expire_all()
    reminder = db.get(LocationReminder, reminder_id)
    assert reminder.is_inside is True
    assert reminder.last_triggered_at is not None


def test_does_not_fire_outside_radius(db, notifier):
    _reminder(db)
    assert _report(db, notifier, AWAY) == 0
    assert db.query(Notification).count() == 0


def test_always_policy_refires_on_every_report(db, notifier):
    _reminder(db)
    assert _report(db, notifier, HOME, policy="always") == 1
    assert _report(db, notifier, HOME, policy="always") == 1
    assert db.query(Notification).count() == 2


def test_once_per_entry_policy_rearms_on_exit(db, notifier):
    _reminder(db)
    assert _report(db, notifier, HOME, policy="once_per_entry") == 1
    assert _report(db, notifier, HOME, policy="once_per_entry") == 0
    assert _report(db, notifier, AWAY, policy="once_per_entry") == 0
    assert _report(db, notifier, HOME, policy="once_per_entry") == 1


def test_exit_trigger_fires_on_leaving(db, notifier):
    _reminder(db, trigger_type="exit")
    assert _report(db, notifier, AWAY) == 0
    assert _report(db, notifier, HOME) == 0
    assert _report(db, notifier, AWAY) == 1
    assert _report(db, notifier, AWAY) == 0


def test_only_exit_reminders_stay_silent_at_the_exact_location(db, notifier):
    # enter and both fire inside the radius; exit waits for the patient to leave
    _reminder(db, trigger_type="enter")
    _reminder(db, trigger_type="both")
    _reminder(db, trigger_type="exit")

    assert _report(db, notifier, HOME, policy="always") == 2
    assert db.query(Notification).count() == 2
    assert _report(db, notifier, AWAY, policy="always") == 2


def test_inactive_reminders_ignored(db, notifier):
    reminder_id = _reminder(db)
    db.get(LocationReminder, reminder_id).is_active = False
    db.commit()
    assert _report(db, notifier, HOME) == 0


@pytest.mark.parametrize(
    "trigger_type, was_inside, inside, policy, expected",
    [
        ("enter", False, True, "always", True),
        ("enter", True, True, "always", True),
        ("enter", True, True, "once_per_entry", False),
        ("enter", True, False, "always", False),
        ("exit", True, False, "always", True),
        ("exit", False, True, "always", False),
        ("both", False, True, "once_per_entry", True),
        ("both", True, False, "once_per_entry", True),
        ("both", True, True, "once_per_entry", False),
    ],
)
def test_should_fire(trigger_type, was_inside, inside, policy, expected):
    assert should_fire(trigger_type, was_inside, inside, policy) is expected


def test_missing_reminder_table_is_a_no_op(engine, notifier):
    LocationReminder.__table__.drop(engine)
    db = sessionmaker(bind=engine)()
    try:
        assert _report(db, notifier, HOME) == 0
    finally:
        db.close()
