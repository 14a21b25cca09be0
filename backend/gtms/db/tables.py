"""
Single source of truth for database tables that exist after all migrations (001-006).

Use these names when writing raw SQL. Tables owned by the excluded CRUD surfaces (users,
profiles, documents) live in the same database but are not modelled here.
"""
# Record-store tables read by the scheduled checks and the compliance engine.
RECORD_TABLE_NAMES = (
    "medications",
    "medication_reminders",
    "medication_usage_records",
    "medication_inventory",
    "iop_measurements",
    "appointments",
)

# Tables written by the notification pipeline.
NOTIFICATION_TABLE_NAMES = (
    "notifications",
    "notification_history",
    "alerts",
    "push_subscriptions",
    "location_reminders",
    "user_locations",
    "compliance_reports",
)

ALL_TABLE_NAMES = RECORD_TABLE_NAMES + NOTIFICATION_TABLE_NAMES
