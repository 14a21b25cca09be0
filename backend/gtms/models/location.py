"""Geofenced reminders and the raw location reports that are evaluated against them.

is_inside: whether the last evaluated report was within the radius (drives exit triggers and
the once_per_entry re-fire policy). last_triggered_at: when the reminder last produced a notification.
"""
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import new_id


class LocationReminder(Base):
    __tablename__ = "location_reminders"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    location_name = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius = Column(Integer, nullable=False, default=100)  # meters
    reminder_type = Column(String(32), nullable=True)  # medication | appointment | general
    reminder_message = Column(Text, nullable=False)
    trigger_type = Column(String(8), nullable=False, default="enter")  # enter | exit | both
    is_active = Column(Boolean, nullable=False, default=True)
    is_inside = Column(Boolean, nullable=False, default=False)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UserLocation(Base):
    __tablename__ = "user_locations"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)
    address = Column(String(512), nullable=True)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
