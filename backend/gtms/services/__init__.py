from gtms.services.dispatcher import DeliveryDispatcher, DeliveryOutcome
from gtms.services.notification_factory import NotificationFactory, NotificationResult, sound_for_type
from gtms.services.notifier import Notifier

__all__ = [
    "DeliveryDispatcher",
    "DeliveryOutcome",
    "NotificationFactory",
    "NotificationResult",
    "Notifier",
    "sound_for_type",
]
