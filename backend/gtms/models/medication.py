"""Medication catalogue, per-patient reminders, usage outcomes and bottle inventory.

days_of_week: CSV of weekday numbers, 0 = Monday ... 6 = Sunday (empty = every day).
A usage record is one outcome (taken | skipped | delayed) for one reminder occurrence;
scheduled_time is the occurrence in clinic-local wall time.
"""
from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import new_id

USAGE_TAKEN = "taken"
USAGE_SKIPPED = "skipped"
USAGE_DELAYED = "delayed"


class Medication(Base):
    __tablename__ = "medications"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    generic_name = Column(String(255), nullable=True)


class MedicationReminder(Base):
    __tablename__ = "medication_reminders"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    prescription_id = Column(String(64), nullable=True)
    medication_id = Column(String(32), ForeignKey("medications.id"), nullable=False)
    reminder_time = Column(Time, nullable=False)
    days_of_week = Column(String(32), nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    eye = Column(String(8), nullable=True)  # left | right | both
    drops_count = Column(Integer, nullable=True)
    notification_channels = Column(String(64), nullable=True)  # CSV: app,push,sound
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    medication = relationship("Medication")


class MedicationUsageRecord(Base):
    __tablename__ = "medication_usage_records"

    id = Column(String(32), primary_key=True, default=new_id)
    reminder_id = Column(String(32), ForeignKey("medication_reminders.id"), nullable=False, index=True)
    patient_id = Column(String(64), nullable=False, index=True)
    medication_id = Column(String(32), nullable=True)
    scheduled_time = Column(DateTime, nullable=False, index=True)
    actual_time = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False)  # taken | skipped | delayed
    notes = Column(Text, nullable=True)


class MedicationInventory(Base):
    __tablename__ = "medication_inventory"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    medication_id = Column(String(32), ForeignKey("medications.id"), nullable=False)
    bottles_dispensed = Column(Integer, nullable=False, default=1)
    dispensed_date = Column(Date, nullable=True)
    expected_end_date = Column(Date, nullable=True)
    is_depleted = Column(Boolean, nullable=False, default=False)

    medication = relationship("Medication")
