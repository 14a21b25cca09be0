from datetime import datetime, timedelta

from gtms.config import settings
from gtms.models.compliance_report import ComplianceReport
from gtms.models.location import LocationReminder
from gtms.models.notification import Notification
from gtms.models.notification_history import NotificationHistory
from gtms.models.push_subscription import PushSubscription

from conftest import PATIENT_ID, make_token

SUBSCRIBE_BODY = {
    "subscription": {"endpoint": "https://push.example/abc", "keys": {"p256dh": "key-1", "auth": "auth-1"}},
    "device_info": {"browser": "firefox"},
}


def _notify(factory, db, n=1, notification_type="medication_reminder", **kwargs):
    return [
        factory.create(db, PATIENT_ID, notification_type, f"Title {i}", f"Body {i}", "high", **kwargs).notification_id
        for i in range(n)
    ]


# --- Auth and error shape ---


def test_missing_token(client):
    resp = client.get("/api/patient/notifications")
    assert resp.status_code == 401
    assert resp.json() == {"message": "Access token required", "code": "TOKEN_REQUIRED"}


def test_expired_and_invalid_tokens(client):
    expired = make_token(expires_in=timedelta(minutes=-5))
    resp = client.get("/api/patient/notifications", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "TOKEN_EXPIRED"

    resp = client.get("/api/patient/notifications", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "TOKEN_INVALID"


def test_non_patient_role_rejected(client):
    token = make_token(role="doctor")
    resp = client.get("/api/patient/notifications", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_PERMISSIONS"


# --- Notifications ---


def test_list_notifications(client, auth_headers, db, factory):
    _notify(factory, db, 2)
    factory.create(db, "someone-else", "health_alert", "Other", "Other", "high")

    resp = client.get("/api/patient/notifications", headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert len(data["notifications"]) == 2
    assert data["unread_count"] == 2
    assert data["sound_base_url"] == "/api/sounds/"
    assert data["available_sounds"]["medication"] == "medication-reminder.mp3"
    first = data["notifications"][0]
    assert first["notification_type_display"] == "Medication reminder"
    assert first["priority_display"] == "High"
    assert first["sound_file"] == "medication-reminder.mp3"


def test_mark_read_is_idempotent(client, auth_headers, db, factory):
    (notification_id,) = _notify(factory, db)

    first = client.put(f"/api/patient/notifications/{notification_id}/read", headers=auth_headers)
    second = client.put(f"/api/patient/notifications/{notification_id}/read", headers=auth_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["read_at"] is not None
    assert second.json()["read_at"] == first.json()["read_at"]
    db.expire_all()
    assert db.get(Notification, notification_id).is_read is True
    reads = (
        db.query(NotificationHistory)
        .filter(NotificationHistory.notification_id == notification_id, NotificationHistory.action_type == "read")
        .count()
    )
    assert reads == 1


def test_mark_read_unknown_or_foreign_notification(client, auth_headers, db, factory):
    foreign = factory.create(db, "someone-else", "health_alert", "Other", "Other").notification_id

    resp = client.put("/api/patient/notifications/does-not-exist/read", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"
    assert client.put(f"/api/patient/notifications/{foreign}/read", headers=auth_headers).status_code == 404


def test_mark_all_read(client, auth_headers, db, factory):
    _notify(factory, db, 3)

    resp = client.put("/api/patient/notifications/mark-all-read", headers=auth_headers)

    assert resp.json()["updated"] == 3
    assert client.get("/api/patient/notifications", headers=auth_headers).json()["unread_count"] == 0


def test_notification_history_pagination_and_filters(client, auth_headers, db, factory):
    _notify(factory, db, 5)
    _notify(factory, db, 2, notification_type="health_alert")

    resp = client.get("/api/patient/notification-history?page=2&limit=3", headers=auth_headers)
    data = resp.json()
    assert data["pagination"] == {"current_page": 2, "total_pages": 3, "total_items": 7, "items_per_page": 3}
    assert len(data["notifications"]) == 3

    resp = client.get("/api/patient/notification-history?type=health_alert&status=unread", headers=auth_headers)
    data = resp.json()
    assert data["pagination"]["total_items"] == 2
    assert data["filters"]["type"] == "health_alert"
    assert {n["notification_type"] for n in data["notifications"]} == {"health_alert"}

    resp = client.get("/api/patient/notification-history?search=Body%204", headers=auth_headers)
    assert resp.json()["pagination"]["total_items"] == 1


def test_notification_history_rejects_bad_status(client, auth_headers):
    resp = client.get("/api/patient/notification-history?status=maybe", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_notification_analytics(client, auth_headers, db, factory):
    ids = _notify(factory, db, 4)
    _notify(factory, db, 1, notification_type="health_alert")
    client.put(f"/api/patient/notifications/{ids[0]}/read", headers=auth_headers)

    data = client.get("/api/patient/notification-analytics?period=7", headers=auth_headers).json()

    assert data["period_days"] == 7
    first = data["analytics"][0]
    assert first["notification_type"] == "medication_reminder"
    assert first["total_notifications"] == 4
    assert first["read_count"] == 1
    assert first["read_rate"] == 25.0


# --- Push subscriptions ---


def test_push_subscribe_upserts_per_endpoint(client, auth_headers, db):
    first = client.post("/api/patient/push-subscribe", json=SUBSCRIBE_BODY, headers=auth_headers)
    assert first.status_code == 200
    subscription_id = first.json()["subscription_id"]

    db.get(PushSubscription, subscription_id).is_active = False
    db.commit()
    body = {**SUBSCRIBE_BODY, "subscription": {**SUBSCRIBE_BODY["subscription"], "keys": {"p256dh": "key-2", "auth": "auth-2"}}}
    second = client.post("/api/patient/push-subscribe", json=body, headers=auth_headers)

    assert second.json()["subscription_id"] == subscription_id
    db.expire_all()
    row = db.query(PushSubscription).one()
    assert row.p256dh_key == "key-2"
    assert row.is_active is True
    assert row.device_info == {"browser": "firefox"}


def test_push_subscribe_validation(client, auth_headers):
    resp = client.post("/api/patient/push-subscribe", json={"subscription": {"endpoint": "x"}}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_push_subscribe_without_table_is_501(client, auth_headers, engine):
    PushSubscription.__table__.drop(engine)

    resp = client.post("/api/patient/push-subscribe", json=SUBSCRIBE_BODY, headers=auth_headers)

    assert resp.status_code == 501
    assert resp.json()["code"] == "FEATURE_NOT_AVAILABLE"


def test_vapid_public_key(client):
    assert client.get("/api/patient/push/vapid-public-key").json() == {"public_key": "test-public-key", "enabled": True}


# --- Location ---


def test_location_report_triggers_reminder(client, auth_headers, db):
    created = client.post(
        "/api/patient/location-reminders",
        json={
            "location_name": "Clinic",
            "latitude": 13.0,
            "longitude": 100.0,
            "reminder_message": "Bring your eye drops",
            "reminder_type": "medication",
        },
        headers=auth_headers,
    )
    assert created.status_code == 200

    resp = client.post("/api/patient/location", json={"latitude": 13.0, "longitude": 100.0, "accuracy": 5}, headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["triggered_reminders"] == 1
    assert db.query(Notification).filter(Notification.notification_type == "location_reminder").count() == 1

    listed = client.get("/api/patient/location-reminders", headers=auth_headers).json()["location_reminders"]
    assert listed[0]["location_name"] == "Clinic"
    assert listed[0]["radius"] == 100
    assert listed[0]["trigger_type_display"] == "On arrival"
    assert listed[0]["is_inside"] is True


def test_location_validation(client, auth_headers):
    resp = client.post("/api/patient/location", json={"latitude": 123.0, "longitude": 100.0}, headers=auth_headers)
    assert resp.status_code == 400
    resp = client.post(
        "/api/patient/location-reminders",
        json={"location_name": "X", "latitude": 1, "longitude": 1, "reminder_message": "m", "trigger_type": "hover"},
        headers=auth_headers,
    )
    assert resp.status_code == 400


def test_location_without_tables_is_501(client, auth_headers, engine):
    LocationReminder.__table__.drop(engine)

    resp = client.get("/api/patient/location-reminders", headers=auth_headers)

    assert resp.status_code == 501
    assert resp.json()["code"] == "FEATURE_NOT_AVAILABLE"


# --- Compliance ---


def test_compliance_report_and_history(client, auth_headers, db):
    resp = client.get("/api/patient/compliance-report?period=30&type=overall", headers=auth_headers)
    assert resp.status_code == 200
    report = resp.json()
    assert report["overall_medication_compliance"]["compliance_rate"] == 0.0
    assert "report_id" in report

    client.get("/api/patient/compliance-report?type=medication", headers=auth_headers)
    assert db.query(ComplianceReport).count() == 1

    history = client.get("/api/patient/compliance-history", headers=auth_headers).json()["compliance_history"]
    assert len(history) == 1
    assert history[0]["report_id"] == report["report_id"]
    assert history[0]["period_days"] == 30
    assert history[0]["grade"] == "critical"


def test_compliance_report_rejects_unknown_type(client, auth_headers):
    resp = client.get("/api/patient/compliance-report?type=everything", headers=auth_headers)
    assert resp.status_code == 400


# --- Sounds and health ---


def test_sound_served_from_allow_list(client, tmp_path, monkeypatch):
    (tmp_path / "medication-reminder.mp3").write_bytes(b"ID3fake")
    monkeypatch.setattr(settings, "sounds_dir", str(tmp_path))

    resp = client.get("/api/sounds/medication-reminder.mp3")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["cache-control"] == "public, max-age=86400"
    assert resp.content == b"ID3fake"


def test_sound_outside_allow_list_or_missing(client, tmp_path, monkeypatch):
    (tmp_path / "secret.txt").write_text("nope")
    monkeypatch.setattr(settings, "sounds_dir", str(tmp_path))

    for name in ("secret.txt", "..%2Fconfig.py", "appointment-alert.mp3"):
        resp = client.get(f"/api/sounds/{name}")
        assert resp.status_code == 404

    assert client.get("/api/sounds/secret.txt").json()["code"] == "SOUND_NOT_FOUND"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    data = client.get("/health/tasks").json()
    assert data["scheduler_enabled"] is False
    assert isinstance(data["tasks"], dict)
