"""
Centralized constants for scheduled checks, notification types and sounds.

Change job ids, cron hours or clinical thresholds here instead of scattering literals across
main, scheduler jobs and services.
"""

# ---------------------------------------------------------------------------
# Scheduler job ids and cron schedules (must match ids used in main.py add_job)
# ---------------------------------------------------------------------------
HIGH_IOP_JOB_ID = "high_iop_check"
HIGH_IOP_CRON = {"hour": "8,12,18", "minute": 0}
MISSED_MEDICATION_JOB_ID = "missed_medication_check"
MISSED_MEDICATION_CRON = {"minute": "*/15"}
LOW_INVENTORY_JOB_ID = "low_inventory_check"
LOW_INVENTORY_CRON = {"hour": 9, "minute": 0}
APPOINTMENT_REMINDER_JOB_ID = "appointment_reminder_check"
APPOINTMENT_REMINDER_CRON = {"hour": "9,18", "minute": 0}

# ---------------------------------------------------------------------------
# Clinical thresholds and windows
# ---------------------------------------------------------------------------
HIGH_IOP_THRESHOLD_MMHG = 21
MISSED_MEDICATION_GRACE_MINUTES = 15
LOW_INVENTORY_LOOKAHEAD_DAYS = 3
# Same-day appointment reminders only go out inside this morning window (inclusive)
APPOINTMENT_MORNING_WINDOW = ("08:00", "10:00")

EARTH_RADIUS_M = 6_371_000
DEFAULT_LOCATION_RADIUS_M = 100

# Location re-fire policies
LOCATION_REFIRE_ALWAYS = "always"
LOCATION_REFIRE_ONCE_PER_ENTRY = "once_per_entry"

# ---------------------------------------------------------------------------
# Notification types, priorities and sounds
# ---------------------------------------------------------------------------
TYPE_MEDICATION_REMINDER = "medication_reminder"
TYPE_APPOINTMENT_REMINDER = "appointment_reminder"
TYPE_HEALTH_ALERT = "health_alert"
TYPE_MEDICATION_INVENTORY = "medication_inventory"
TYPE_EMERGENCY_ALERT = "emergency_alert"
TYPE_SYSTEM_ANNOUNCEMENT = "system_announcement"
TYPE_LOCATION_REMINDER = "location_reminder"

NOTIFICATION_TYPES = (
    TYPE_MEDICATION_REMINDER,
    TYPE_APPOINTMENT_REMINDER,
    TYPE_HEALTH_ALERT,
    TYPE_MEDICATION_INVENTORY,
    TYPE_EMERGENCY_ALERT,
    TYPE_SYSTEM_ANNOUNCEMENT,
    TYPE_LOCATION_REMINDER,
)

PRIORITIES = ("low", "medium", "high", "urgent")

# Alert types (alerts table) double as sound keys for the iop-warning class
ALERT_HIGH_IOP = "high_iop"
ALERT_MISSED_MEDICATION = "missed_medication"
ALERT_APPOINTMENT_MISSED = "appointment_missed"
ALERT_TREATMENT_CONCERN = "treatment_concern"

NOTIFICATION_SOUNDS = {
    "medication": "medication-reminder.mp3",
    "appointment": "appointment-alert.mp3",
    "emergency": "emergency-alert.mp3",
    "general": "general-notification.mp3",
    "iop_alert": "iop-warning.mp3",
}

# notification type -> key in NOTIFICATION_SOUNDS; anything else is "general"
SOUND_KEY_BY_TYPE = {
    TYPE_MEDICATION_REMINDER: "medication",
    TYPE_APPOINTMENT_REMINDER: "appointment",
    TYPE_HEALTH_ALERT: "emergency",
    TYPE_EMERGENCY_ALERT: "emergency",
    ALERT_HIGH_IOP: "iop_alert",
}

VIBRATION_PATTERNS = {
    "medication": [200, 100, 200],
    "appointment": [300, 200, 300],
    "emergency": [500, 100, 500, 100, 500],
    "general": [150, 100, 150],
    "iop_alert": [400, 150, 400],
}

DEFAULT_PUSH_ICON = "/icons/medication-icon-192.png"
DEFAULT_PUSH_BADGE = "/icons/badge-72.png"
DEFAULT_PUSH_TAG = "gtms-notification"
DEFAULT_ACTION_URL = "/notifications"

# Audit trail action types and channels
ACTION_CREATED = "created"
ACTION_SENT = "sent"
ACTION_FAILED = "failed"
ACTION_READ = "read"
CHANNEL_APP = "app"
CHANNEL_PUSH = "push"

# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------
# (lower bound inclusive, grade); first match wins
COMPLIANCE_GRADES = (
    (95, "excellent"),
    (80, "good"),
    (60, "fair"),
    (40, "poor"),
)
COMPLIANCE_GRADE_FLOOR = "critical"
DEFAULT_REPORT_PERIOD_DAYS = 30
DEFAULT_COMPLIANCE_HISTORY_LIMIT = 12

# ---------------------------------------------------------------------------
# Display labels (localized); unknown values fall back to the raw value
# ---------------------------------------------------------------------------
TYPE_LABELS = {
    "th": {
        TYPE_MEDICATION_REMINDER: "แจ้งเตือนยา",
        TYPE_APPOINTMENT_REMINDER: "แจ้งเตือนนัดหมาย",
        TYPE_HEALTH_ALERT: "แจ้งเตือนสุขภาพ",
        TYPE_MEDICATION_INVENTORY: "แจ้งเตือนยาใกล้หมด",
        TYPE_EMERGENCY_ALERT: "แจ้งเตือนฉุกเฉิน",
        TYPE_SYSTEM_ANNOUNCEMENT: "ประกาศระบบ",
        TYPE_LOCATION_REMINDER: "แจ้งเตือนตามสถานที่",
    },
    "en": {
        TYPE_MEDICATION_REMINDER: "Medication reminder",
        TYPE_APPOINTMENT_REMINDER: "Appointment reminder",
        TYPE_HEALTH_ALERT: "Health alert",
        TYPE_MEDICATION_INVENTORY: "Medication running low",
        TYPE_EMERGENCY_ALERT: "Emergency alert",
        TYPE_SYSTEM_ANNOUNCEMENT: "System announcement",
        TYPE_LOCATION_REMINDER: "Location reminder",
    },
}

PRIORITY_LABELS = {
    "th": {"low": "ต่ำ", "medium": "ปานกลาง", "high": "สูง", "urgent": "ด่วน"},
    "en": {"low": "Low", "medium": "Medium", "high": "High", "urgent": "Urgent"},
}

TRIGGER_LABELS = {
    "th": {"enter": "เมื่อเข้าสถานที่", "exit": "เมื่อออกจากสถานที่", "both": "เข้าและออก"},
    "en": {"enter": "On arrival", "exit": "On departure", "both": "Arrival and departure"},
}

REMINDER_TYPE_LABELS = {
    "th": {"medication": "เตือนการใช้ยา", "appointment": "เตือนการนัดหมาย", "general": "เตือนทั่วไป"},
    "en": {"medication": "Medication", "appointment": "Appointment", "general": "General"},
}


def display_label(table: dict[str, dict[str, str]], locale: str, value: str | None) -> str | None:
    """Localized label for value; unknown locale falls back to en, unknown value to itself."""
    labels = table.get(locale) or table["en"]
    return labels.get(value, value) if value is not None else None
