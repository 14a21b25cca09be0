"""
Notification read/response statistics, grouped by notification type.
Used by the notification-analytics endpoint and by the notification part of compliance reports.
"""
import statistics
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.core.errors import is_missing_schema_error
from gtms.models.notification import Notification


def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def rate(part: int, total: int) -> float:
    """part/total as a percentage rounded to 2 decimals; 0.0 when total is 0."""
    if not total:
        return 0.0
    return round(part / total * 100, 2)


def _load(db: Session, user_id: str, since: datetime, until: datetime | None) -> list[tuple]:
    base = [Notification.notification_type, Notification.is_read, Notification.created_at, Notification.read_at]
    filters = [Notification.user_id == user_id, Notification.created_at >= since]
    if until is not None:
        filters.append(Notification.created_at <= until)
    try:
        return db.query(*base, Notification.push_sent).filter(*filters).all()
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if not is_missing_schema_error(e):
            raise
    return [(*r, False) for r in db.query(*base).filter(*filters).all()]


def summarize_notifications(
    db: Session, user_id: str, since: datetime, until: datetime | None = None
) -> list[dict[str, Any]]:
    """Per type: total, read count, push sent count, read rate and average minutes to read. Most sent first."""
    groups: dict[str, list[tuple]] = defaultdict(list)
    for row in _load(db, user_id, since, until):
        groups[row[0]].append(row)

    out = []
    for notification_type, rows in groups.items():
        read_count = sum(1 for r in rows if r[1])
        minutes = [
            (as_utc(r[3]) - as_utc(r[2])).total_seconds() / 60
            for r in rows
            if r[3] is not None and r[2] is not None
        ]
        out.append({
            "notification_type": notification_type,
            "total_notifications": len(rows),
            "read_count": read_count,
            "push_sent_count": sum(1 for r in rows if r[4]),
            "read_rate": rate(read_count, len(rows)),
            "avg_response_time_minutes": round(statistics.mean(minutes), 2) if minutes else None,
        })
    out.sort(key=lambda g: g["total_notifications"], reverse=True)
    return out
