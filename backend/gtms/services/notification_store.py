"""
Capability-checked storage for notification rows.

Writes and reads try the full schema first. When the database reports a missing column or table
(migration 003 not applied yet) the same call falls back to the guaranteed columns, so callers
never branch on schema version.
"""
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from gtms.core.errors import is_missing_schema_error
from gtms.models.notification import Notification

logger = logging.getLogger(__name__)

# Readable on every schema version
_BASE_READ_COLUMNS = Notification.GUARANTEED_COLUMNS + ("is_read", "read_at", "created_at")
_DELIVERY_READ_COLUMNS = (
    "sound_file",
    "sound_enabled",
    "vibration_enabled",
    "push_enabled",
    "push_sent",
    "sent_at",
    "action_url",
    "payload",
)


class NotificationStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, values: dict[str, Any]) -> str:
        """Insert one notification. values must include "id". Raises on non-schema storage errors."""
        try:
            self.db.execute(insert(Notification).values(**values))
            self.db.commit()
            return values["id"]
        except (OperationalError, ProgrammingError) as e:
            self.db.rollback()
            if not is_missing_schema_error(e):
                raise
            logger.warning("Notifications table lacks delivery columns; using reduced insert (%s)", e.orig)
        reduced = {k: v for k, v in values.items() if k in Notification.GUARANTEED_COLUMNS}
        self.db.execute(insert(Notification).values(**reduced))
        self.db.commit()
        return values["id"]

    def mark_push_sent(self, notification_id: str, sent_at: datetime) -> bool:
        """Set push_sent once. Returns False when already sent or the column does not exist."""
        try:
            result = self.db.execute(
                update(Notification)
                .where(Notification.id == notification_id, Notification.push_sent.is_(False))
                .values(push_sent=True, sent_at=sent_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            return result.rowcount > 0
        except (OperationalError, ProgrammingError) as e:
            self.db.rollback()
            if not is_missing_schema_error(e):
                raise
            logger.debug("push_sent column missing; not recording push state for %s", notification_id)
            return False

    def mark_read(self, notification_id: str, user_id: str, read_at: datetime) -> bool:
        """Flip is_read false -> true once. Returns True only for the call that flipped it."""
        result = self.db.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount > 0

    def mark_all_read(self, user_id: str, read_at: datetime) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def get(self, notification_id: str, user_id: str | None = None) -> dict[str, Any] | None:
        rows = self._select(
            lambda q: q.where(Notification.id == notification_id)
            if user_id is None
            else q.where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        return rows[0] if rows else None

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> list[dict[str, Any]]:
        def _filter(q):
            q = q.where(Notification.user_id == user_id)
            if unread_only:
                q = q.where(Notification.is_read.is_(False))
            return q.order_by(Notification.created_at.desc()).limit(limit)

        return self._select(_filter)

    def count_unread(self, user_id: str) -> int:
        return self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        ).scalar_one()

    def search(
        self,
        user_id: str,
        *,
        notification_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        is_read: bool | None = None,
        priority: str | None = None,
        text: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """Filtered page of a user's notifications, newest first, plus the total matching count."""
        conditions = [Notification.user_id == user_id]
        if notification_type:
            conditions.append(Notification.notification_type == notification_type)
        if start is not None:
            conditions.append(Notification.created_at >= start)
        if end is not None:
            conditions.append(Notification.created_at < end)
        if is_read is not None:
            conditions.append(Notification.is_read.is_(is_read))
        if priority:
            conditions.append(Notification.priority == priority)
        if text:
            pattern = f"%{text}%"
            conditions.append(or_(Notification.title.like(pattern), Notification.body.like(pattern)))

        total = self.db.execute(select(func.count()).select_from(Notification).where(*conditions)).scalar_one()
        rows = self._select(
            lambda q: q.where(*conditions).order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        )
        return rows, total

    def _select(self, apply) -> list[dict[str, Any]]:
        """Run a filtered select over all columns, falling back to the guaranteed ones."""
        try:
            return self._run(apply, _BASE_READ_COLUMNS + _DELIVERY_READ_COLUMNS)
        except (OperationalError, ProgrammingError) as e:
            self.db.rollback()
            if not is_missing_schema_error(e):
                raise
        return self._run(apply, _BASE_READ_COLUMNS)

    def _run(self, apply, columns: tuple[str, ...]) -> list[dict[str, Any]]:
        q = apply(select(*[getattr(Notification, c) for c in columns]))
        out = []
        for row in self.db.execute(q).all():
            item = dict(zip(columns, row))
            if "payload" in item:
                item["metadata"] = item.pop("payload")
            out.append(item)
        return out
