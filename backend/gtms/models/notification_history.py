"""Append-only audit trail of notification actions (created, sent, failed, read) per channel."""
from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import JSONType, new_id


class NotificationHistory(Base):
    __tablename__ = "notification_history"

    id = Column(String(32), primary_key=True, default=new_id)
    notification_id = Column(String(32), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    action_type = Column(String(16), nullable=False)  # created | sent | failed | read
    channel = Column(String(16), nullable=False, server_default="app")  # app | push
    action_timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    device_info = Column(JSONType, nullable=True)
    payload = Column("metadata", JSONType, key="payload", nullable=True)
