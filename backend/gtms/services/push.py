"""
Send Web Push notifications (VAPID) to browser/mobile subscriptions.
Requires VAPID_PRIVATE_KEY (and VAPID_PUBLIC_KEY for clients) in env; when missing the dispatcher
skips push entirely.

send_web_push is blocking (pywebpush uses requests); the dispatcher runs it in a worker thread
with a timeout.
"""
import json
import logging
from typing import Any, Callable

from pywebpush import WebPushException, webpush

from gtms.config import NotificationConfig
from gtms.core.constants import DEFAULT_ACTION_URL, DEFAULT_PUSH_TAG, VIBRATION_PATTERNS

logger = logging.getLogger(__name__)

# Push service says the subscription is gone for good
STATUS_GONE = 410
PUSH_TTL_SECONDS = 24 * 60 * 60


class PushDeliveryError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_gone(self) -> bool:
        return self.status_code == STATUS_GONE


PushSender = Callable[[dict[str, Any], dict[str, Any], NotificationConfig], None]


def build_push_payload(
    title: str,
    body: str,
    config: NotificationConfig,
    data: dict[str, Any] | None = None,
    sound_key: str = "general",
) -> dict[str, Any]:
    """Payload read by the service worker: title/body/icon/badge/tag, data.url and open/dismiss actions."""
    data = dict(data or {})
    return {
        "title": title,
        "body": body,
        "icon": config.push_icon,
        "badge": config.push_badge,
        "tag": data.get("tag") or DEFAULT_PUSH_TAG,
        "vibrate": VIBRATION_PATTERNS.get(sound_key, VIBRATION_PATTERNS["general"]),
        "data": {**data, "url": data.get("url") or DEFAULT_ACTION_URL},
        "actions": [
            {"action": "open", "title": "Open"},
            {"action": "dismiss", "title": "Dismiss"},
        ],
    }


def send_web_push(subscription_info: dict[str, Any], payload: dict[str, Any], config: NotificationConfig) -> None:
    """
    Send one push message. Returns on success; raises PushDeliveryError with the push service's
    status code (None when the request never got a response).
    """
    try:
        webpush(
            subscription_info=subscription_info,
            data=json.dumps(payload, ensure_ascii=False),
            vapid_private_key=config.vapid_private_key,
            vapid_claims=dict(config.vapid_claims),  # pywebpush adds aud/exp to the dict it gets
            ttl=PUSH_TTL_SECONDS,
            timeout=config.push_timeout_seconds,
        )
    except WebPushException as e:
        status = e.response.status_code if e.response is not None else None
        raise PushDeliveryError(str(e), status_code=status) from e
    except Exception as e:
        raise PushDeliveryError(str(e)) from e
