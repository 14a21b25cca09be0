"""Intraocular pressure reading (mmHg) per eye, recorded at home or at the hospital."""
from sqlalchemy import Boolean, Column, Date, Float, String, Text, Time

from gtms.db.base import Base
from gtms.models._types import new_id


class IopMeasurement(Base):
    __tablename__ = "iop_measurements"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    measurement_date = Column(Date, nullable=False, index=True)
    measurement_time = Column(Time, nullable=True)
    left_eye_iop = Column(Float, nullable=True)
    right_eye_iop = Column(Float, nullable=True)
    measured_at_hospital = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
