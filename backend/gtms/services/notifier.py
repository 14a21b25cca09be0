"""
Create-and-deliver: what the scheduled checks and the location evaluator call.

Factory writes the row, the audit trail records "created", the dispatcher pushes when the
notification's push flag is on. Never raises; returns None when the row could not be created.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from gtms.core.constants import ACTION_CREATED, CHANNEL_APP, DEFAULT_ACTION_URL
from gtms.services.audit import log_notification_action
from gtms.services.dispatcher import DeliveryDispatcher
from gtms.services.notification_factory import NotificationFactory, NotificationResult, sound_key_for_type

logger = logging.getLogger(__name__)


class Notifier:
    def __init__(self, factory: NotificationFactory, dispatcher: DeliveryDispatcher):
        self.factory = factory
        self.dispatcher = dispatcher

    async def notify(
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
        device_info: dict[str, Any] | None = None,
    ) -> NotificationResult | None:
        result = self.factory.create(
            db,
            user_id,
            notification_type,
            title,
            body,
            priority,
            entity_type=entity_type,
            entity_id=entity_id,
            action_url=action_url,
            metadata=metadata,
        )
        if result is None:
            return None
        log_notification_action(
            db, result.notification_id, user_id, ACTION_CREATED, channel=CHANNEL_APP, device_info=device_info
        )
        try:
            await self.dispatcher.dispatch(
                db,
                result.notification_id,
                user_id,
                title,
                body,
                push_enabled=result.push_enabled,
                data={"tag": notification_type, "url": action_url or DEFAULT_ACTION_URL, "type": notification_type},
                sound_key=sound_key_for_type(notification_type),
            )
        except Exception as e:
            # The in-app notification exists; a broken push path must not undo that
            logger.exception("Dispatch failed for notification %s: %s", result.notification_id, e)
            db.rollback()
        return result
