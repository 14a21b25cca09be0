from gtms.models.alert import Alert
from gtms.models.appointment import Appointment
from gtms.models.compliance_report import ComplianceReport
from gtms.models.iop_measurement import IopMeasurement
from gtms.models.location import LocationReminder, UserLocation
from gtms.models.medication import Medication, MedicationInventory, MedicationReminder, MedicationUsageRecord
from gtms.models.notification import Notification
from gtms.models.notification_history import NotificationHistory
from gtms.models.push_subscription import PushSubscription

__all__ = [
    "Alert",
    "Appointment",
    "ComplianceReport",
    "IopMeasurement",
    "LocationReminder",
    "Medication",
    "MedicationInventory",
    "MedicationReminder",
    "MedicationUsageRecord",
    "Notification",
    "NotificationHistory",
    "PushSubscription",
    "UserLocation",
]
