"""Web Push registration: one subscription per (user, endpoint); re-subscribing refreshes keys in place."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.api.deps import get_config
from gtms.config import NotificationConfig
from gtms.core.errors import FeatureUnavailable, is_missing_schema_error
from gtms.core.security import CurrentUser, get_current_patient
from gtms.db.session import get_db
from gtms.models.push_subscription import PushSubscription

router = APIRouter()
logger = logging.getLogger(__name__)


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class Subscription(BaseModel):
    endpoint: str = Field(..., min_length=1, max_length=512)
    keys: SubscriptionKeys


class PushSubscribeBody(BaseModel):
    subscription: Subscription
    device_info: dict[str, Any] = Field(default_factory=dict)


def _upsert(db: Session, user_id: str, body: PushSubscribeBody) -> str:
    sub = body.subscription
    device_info = jsonable_encoder(body.device_info)
    existing = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == sub.endpoint)
        .first()
    )
    if existing:
        existing.p256dh_key = sub.keys.p256dh
        existing.auth_key = sub.keys.auth
        existing.device_info = device_info
        existing.is_active = True
        db.commit()
        return existing.id
    row = PushSubscription(
        user_id=user_id,
        endpoint=sub.endpoint,
        p256dh_key=sub.keys.p256dh,
        auth_key=sub.keys.auth,
        device_info=device_info,
        is_active=True,
    )
    db.add(row)
    db.commit()
    return row.id


@router.post("/push-subscribe")
def push_subscribe(
    body: PushSubscribeBody,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
) -> dict[str, Any]:
    """Register (or refresh) this browser's push subscription. 501 when push storage is not provisioned."""
    try:
        subscription_id = _upsert(db, user.user_id, body)
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if is_missing_schema_error(e):
            logger.info("push_subscriptions table not provisioned; rejecting subscribe")
            raise FeatureUnavailable("Push notifications")
        raise
    logger.info("Registered push subscription %s for user %s", subscription_id, user.user_id)
    return {"message": "Subscribed to push notifications", "subscription_id": subscription_id}


@router.get("/push/vapid-public-key")
def vapid_public_key(config: NotificationConfig = Depends(get_config)) -> dict[str, Any]:
    """Public key the browser needs for PushManager.subscribe; empty when push is not configured."""
    return {"public_key": config.vapid_public_key, "enabled": config.push_configured}
