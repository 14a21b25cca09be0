"""
Delivery Dispatcher: decides channels for a created notification and delivers push.

In-app delivery is the notification row itself. Push fans out to every active subscription of
the user concurrently; each subscription is isolated (its failure never affects the others).
A 410 from the push service deactivates that subscription; any other failure or a timeout is
recorded and left alone. push_sent is written once, after every attempt has settled, and only
if at least one attempt succeeded.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.config import NotificationConfig
from gtms.core.constants import ACTION_FAILED, ACTION_SENT, CHANNEL_PUSH
from gtms.core.errors import is_missing_schema_error
from gtms.models.push_subscription import PushSubscription
from gtms.services.audit import log_notification_action
from gtms.services.notification_store import NotificationStore
from gtms.services.push import PushDeliveryError, PushSender, build_push_payload, send_web_push

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    subscription_id: str
    success: bool
    status_code: int | None = None
    error: str | None = None
    deactivated: bool = False


class DeliveryDispatcher:
    def __init__(self, config: NotificationConfig, sender: PushSender = send_web_push):
        self.config = config
        self.sender = sender

    async def dispatch(
        self,
        db: Session,
        notification_id: str,
        user_id: str,
        title: str,
        body: str,
        push_enabled: bool = True,
        data: dict[str, Any] | None = None,
        sound_key: str = "general",
    ) -> list[DeliveryOutcome]:
        """Deliver one notification. Returns one outcome per active push subscription (empty when push is off)."""
        if not push_enabled:
            return []
        if not self.config.push_configured:
            logger.debug("VAPID key not configured; skipping push for %s", notification_id)
            return []
        subscriptions = self._active_subscriptions(db, user_id)
        if not subscriptions:
            logger.debug("No active push subscriptions for user %s", user_id)
            return []

        payload = build_push_payload(
            title,
            body,
            self.config,
            data={**(data or {}), "notification_id": notification_id},
            sound_key=sound_key,
        )
        # Plain values only; the session is used on the event loop thread, never inside a send
        targets = [(s.id, s.subscription_info()) for s in subscriptions]
        outcomes = await asyncio.gather(*(self._send_one(db, sub_id, info, payload) for sub_id, info in targets))

        for outcome in outcomes:
            if outcome.success:
                continue
            log_notification_action(
                db,
                notification_id,
                user_id,
                ACTION_FAILED,
                channel=CHANNEL_PUSH,
                metadata={
                    "subscription_id": outcome.subscription_id,
                    "status_code": outcome.status_code,
                    "error": outcome.error,
                    "deactivated": outcome.deactivated,
                },
            )

        sent = sum(1 for o in outcomes if o.success)
        if sent:
            NotificationStore(db).mark_push_sent(notification_id, datetime.now(timezone.utc))
            log_notification_action(
                db,
                notification_id,
                user_id,
                ACTION_SENT,
                channel=CHANNEL_PUSH,
                metadata={"delivered": sent, "attempted": len(outcomes)},
            )
        logger.info("Push for %s: %s/%s subscriptions delivered", notification_id, sent, len(outcomes))
        return list(outcomes)

    async def _send_one(self, db: Session, subscription_id: str, info: dict[str, Any], payload: dict[str, Any]) -> DeliveryOutcome:
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self.sender, info, payload, self.config),
                timeout=self.config.push_timeout_seconds,
            )
            return DeliveryOutcome(subscription_id=subscription_id, success=True)
        except asyncio.TimeoutError:
            logger.warning("Push to subscription %s timed out after %ss", subscription_id, self.config.push_timeout_seconds)
            return DeliveryOutcome(subscription_id=subscription_id, success=False, error="timeout")
        except PushDeliveryError as e:
            logger.warning("Push to subscription %s failed (%s): %s", subscription_id, e.status_code, e)
            outcome = DeliveryOutcome(subscription_id=subscription_id, success=False, status_code=e.status_code, error=str(e))
            if e.is_gone:
                outcome.deactivated = self._deactivate(db, subscription_id)
            return outcome
        except Exception as e:
            logger.warning("Push to subscription %s failed: %s", subscription_id, e, exc_info=True)
            return DeliveryOutcome(subscription_id=subscription_id, success=False, error=str(e))

    def _active_subscriptions(self, db: Session, user_id: str) -> list[PushSubscription]:
        try:
            return (
                db.query(PushSubscription)
                .filter(PushSubscription.user_id == user_id, PushSubscription.is_active.is_(True))
                .all()
            )
        except (OperationalError, ProgrammingError) as e:
            db.rollback()
            if is_missing_schema_error(e):
                logger.debug("push_subscriptions table not provisioned; skipping push")
                return []
            raise

    def _deactivate(self, db: Session, subscription_id: str) -> bool:
        try:
            db.execute(
                update(PushSubscription)
                .where(PushSubscription.id == subscription_id)
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            logger.info("Deactivated expired push subscription %s", subscription_id)
            return True
        except Exception as e:
            logger.warning("Could not deactivate push subscription %s: %s", subscription_id, e)
            db.rollback()
            return False
