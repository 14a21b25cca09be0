"""
Patient notifications API: list with sound info, read state, history and analytics.

Read state is idempotent: marking a notification read twice keeps the first read_at, and only the
call that flipped it writes a "read" audit entry.
"""
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from gtms.api.deps import get_config
from gtms.config import NotificationConfig, settings
from gtms.core.constants import ACTION_READ, CHANNEL_APP, PRIORITY_LABELS, TYPE_LABELS, display_label
from gtms.core.errors import CODE_NOT_FOUND, STATUS_NOT_FOUND, ApiError
from gtms.core.security import CurrentUser, get_current_patient
from gtms.db.session import get_db
from gtms.services.analytics import summarize_notifications
from gtms.services.audit import log_notification_action
from gtms.services.notification_store import NotificationStore

router = APIRouter()
logger = logging.getLogger(__name__)

SOUND_BASE_URL = "/api/sounds/"


def _with_labels(row: dict[str, Any]) -> dict[str, Any]:
    return {
        **row,
        "notification_type_display": display_label(TYPE_LABELS, settings.locale, row.get("notification_type")),
        "priority_display": display_label(PRIORITY_LABELS, settings.locale, row.get("priority")),
    }


# --- List ---


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    config: NotificationConfig = Depends(get_config),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
) -> dict[str, Any]:
    """Newest first. Sound and channel fields are present when the schema has them."""
    store = NotificationStore(db)
    rows = store.list_for_user(user.user_id, unread_only=unread_only, limit=limit)
    return jsonable_encoder({
        "notifications": [_with_labels(r) for r in rows],
        "unread_count": store.count_unread(user.user_id),
        "sound_base_url": SOUND_BASE_URL,
        "available_sounds": config.sounds,
    })


# --- Read state ---


@router.put("/notifications/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
) -> dict[str, Any]:
    updated = NotificationStore(db).mark_all_read(user.user_id, datetime.now(timezone.utc))
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/notifications/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
) -> dict[str, Any]:
    store = NotificationStore(db)
    if store.get(notification_id, user.user_id) is None:
        raise ApiError(STATUS_NOT_FOUND, CODE_NOT_FOUND, "Notification not found")
    if store.mark_read(notification_id, user.user_id, datetime.now(timezone.utc)):
        log_notification_action(db, notification_id, user.user_id, ACTION_READ, channel=CHANNEL_APP)
    row = store.get(notification_id, user.user_id)
    return jsonable_encoder({
        "message": "Notification marked as read",
        "notification_id": notification_id,
        "is_read": True,
        "read_at": row["read_at"] if row else None,
    })


# --- History ---


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


@router.get("/notification-history")
def notification_history(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    status: str | None = Query(None, pattern="^(read|unread)$"),
    priority: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
) -> dict[str, Any]:
    """Paginated and filtered; date filters are inclusive calendar days (UTC)."""
    rows, total = NotificationStore(db).search(
        user.user_id,
        notification_type=type,
        start=_day_start(start_date) if start_date else None,
        end=_day_start(end_date + timedelta(days=1)) if end_date else None,
        is_read={"read": True, "unread": False}.get(status),
        priority=priority,
        text=search,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return jsonable_encoder({
        "notifications": [_with_labels(r) for r in rows],
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit),
            "total_items": total,
            "items_per_page": limit,
        },
        "filters": {
            "type": type,
            "start_date": start_date,
            "end_date": end_date,
            "status": status,
            "priority": priority,
            "search": search,
        },
    })


# --- Analytics ---


@router.get("/notification-analytics")
def notification_analytics(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    period: int = Query(30, ge=1, le=365),
) -> dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=period)
    return {"analytics": summarize_notifications(db, user.user_id, since), "period_days": period}
