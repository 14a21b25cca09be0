"""
Notification audit trail: append-only rows in notification_history.
Logging an action must never break the caller, so storage errors are logged and dropped.
"""
import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from gtms.core.constants import CHANNEL_APP
from gtms.models.notification_history import NotificationHistory

logger = logging.getLogger(__name__)


def log_notification_action(
    db: Session,
    notification_id: str,
    user_id: str,
    action_type: str,
    channel: str = CHANNEL_APP,
    metadata: dict[str, Any] | None = None,
    device_info: dict[str, Any] | None = None,
) -> str | None:
    """Append one history row. Returns its id, or None when the row could not be written."""
    row = NotificationHistory(
        notification_id=notification_id,
        user_id=user_id,
        action_type=action_type,
        channel=channel,
        device_info=jsonable_encoder(device_info or {}),
        payload=jsonable_encoder(metadata or {}),
    )
    try:
        db.add(row)
        db.commit()
        return row.id
    except Exception as e:
        logger.warning(
            "Could not log notification action %s/%s for %s: %s", action_type, channel, notification_id, e
        )
        db.rollback()
        return None
