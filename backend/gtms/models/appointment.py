"""Scheduled clinic visit. Status: scheduled | completed | no_show | cancelled | rescheduled."""
from sqlalchemy import Column, Date, String, Text, Time

from gtms.db.base import Base
from gtms.models._types import new_id

APPOINTMENT_SCHEDULED = "scheduled"
APPOINTMENT_COMPLETED = "completed"
APPOINTMENT_NO_SHOW = "no_show"
APPOINTMENT_CANCELLED = "cancelled"
APPOINTMENT_RESCHEDULED = "rescheduled"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    doctor_name = Column(String(255), nullable=True)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=True)
    appointment_type = Column(String(64), nullable=True)
    appointment_location = Column(String(255), nullable=True)
    appointment_status = Column(String(16), nullable=False, default=APPOINTMENT_SCHEDULED)
    notes = Column(Text, nullable=True)
