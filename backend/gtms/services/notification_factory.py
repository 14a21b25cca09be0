"""
Notification Factory: the single writer of notification rows.

Builds a notification from a semantic event (type, title, body, priority, options), picks its
sound and channel flags, and inserts exactly one row through NotificationStore. Storage failures
are logged and surfaced as None so an automated check never crashes over one notification.
"""
import logging
from dataclasses import dataclass
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from gtms.config import NotificationConfig
from gtms.core.constants import NOTIFICATION_SOUNDS, NOTIFICATION_TYPES, PRIORITIES, SOUND_KEY_BY_TYPE
from gtms.models._types import new_id
from gtms.services.notification_store import NotificationStore

logger = logging.getLogger(__name__)


def sound_key_for_type(notification_type: str) -> str:
    return SOUND_KEY_BY_TYPE.get(notification_type, "general")


def sound_for_type(notification_type: str, sounds: dict[str, str] | None = None) -> str:
    """Total mapping from notification type to sound file; unknown types get the general sound."""
    sounds = sounds or NOTIFICATION_SOUNDS
    return sounds.get(sound_key_for_type(notification_type)) or sounds.get("general") or NOTIFICATION_SOUNDS["general"]


@dataclass(frozen=True)
class NotificationResult:
    notification_id: str
    notification_type: str
    sound_file: str
    sound_enabled: bool = True
    vibration_enabled: bool = True
    push_enabled: bool = True

    @property
    def channel_flags(self) -> dict[str, bool]:
        return {
            "sound": self.sound_enabled,
            "vibration": self.vibration_enabled,
            "push": self.push_enabled,
        }


class NotificationFactory:
    def __init__(self, config: NotificationConfig):
        self.config = config

    def create(
        self,
        db: Session,
        user_id: str,
        notification_type: str,
        title: str,
        body: str,
        priority: str = "medium",
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
        sound_enabled: bool = True,
        vibration_enabled: bool = True,
        push_enabled: bool = True,
    ) -> NotificationResult | None:
        if notification_type not in NOTIFICATION_TYPES:
            logger.debug("Unknown notification type %r; using general sound", notification_type)
        if priority not in PRIORITIES:
            logger.warning("Unknown priority %r for %s notification; using medium", priority, notification_type)
            priority = "medium"
        sound_file = sound_for_type(notification_type, self.config.sounds)
        notification_id = new_id()
        values = {
            "id": notification_id,
            "user_id": user_id,
            "notification_type": notification_type,
            "title": title,
            "body": body,
            "priority": priority,
            "related_entity_type": entity_type,
            "related_entity_id": str(entity_id) if entity_id is not None else None,
            "sound_file": sound_file,
            "sound_enabled": sound_enabled,
            "vibration_enabled": vibration_enabled,
            "push_enabled": push_enabled,
            "action_url": action_url,
            "payload": jsonable_encoder(metadata or {}),
        }
        try:
            NotificationStore(db).insert(values)
        except Exception as e:
            logger.exception("Create notification failed for user %s (%s): %s", user_id, notification_type, e)
            db.rollback()
            return None
        return NotificationResult(
            notification_id=notification_id,
            notification_type=notification_type,
            sound_file=sound_file,
            sound_enabled=sound_enabled,
            vibration_enabled=vibration_enabled,
            push_enabled=push_enabled,
        )
