"""Notification: one row per delivered message, in-app by existence, optionally pushed.

Guaranteed columns exist on every schema version; the delivery columns (sound, channel flags,
push state, action_url, metadata) arrived in migration 003 and may be missing on databases that
are mid-rollout. Delivery columns therefore carry server defaults only, so a reduced insert of
the guaranteed columns never mentions them.
"""
from sqlalchemy import Boolean, Column, DateTime, String, Text, false, true
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import JSONType, new_id


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    notification_type = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    priority = Column(String(16), nullable=False, server_default="medium")
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(DateTime(timezone=True), nullable=True)
    related_entity_type = Column(String(64), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Delivery columns (migration 003)
    sound_file = Column(String(64), nullable=True)
    sound_enabled = Column(Boolean, nullable=False, server_default=true())
    vibration_enabled = Column(Boolean, nullable=False, server_default=true())
    push_enabled = Column(Boolean, nullable=False, server_default=true())
    push_sent = Column(Boolean, nullable=False, server_default=false())
    sent_at = Column(DateTime(timezone=True), nullable=True)
    action_url = Column(String(255), nullable=True)
    payload = Column("metadata", JSONType, key="payload", nullable=True)  # column name "metadata" in DB

    # Columns present before migration 003
    GUARANTEED_COLUMNS = (
        "id",
        "user_id",
        "notification_type",
        "title",
        "body",
        "priority",
        "related_entity_type",
        "related_entity_id",
    )
