"""Clinical alert raised by a scheduled check; resolved by staff outside this service."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import new_id

ALERT_PENDING = "pending"
ALERT_RESOLVED = "resolved"


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    alert_type = Column(String(32), nullable=False)  # high_iop | missed_medication | appointment_missed | treatment_concern
    severity = Column(String(16), nullable=False)
    alert_message = Column(Text, nullable=False)
    related_entity_type = Column(String(64), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    status = Column(String(16), nullable=False, default=ALERT_PENDING, server_default=ALERT_PENDING)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
