"""Immutable snapshot of an overall compliance report. Written once, never updated."""
from sqlalchemy import Column, Date, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from gtms.db.base import Base
from gtms.models._types import JSONType, new_id


class ComplianceReport(Base):
    __tablename__ = "compliance_reports"

    id = Column(String(32), primary_key=True, default=new_id)
    patient_id = Column(String(64), nullable=False, index=True)
    report_type = Column(String(16), nullable=False, default="overall")
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    total_scheduled = Column(Integer, nullable=False, default=0)
    total_completed = Column(Integer, nullable=False, default=0)
    total_missed = Column(Integer, nullable=False, default=0)
    compliance_rate = Column(Float, nullable=False, default=0)
    grade = Column(String(16), nullable=False)
    detailed_data = Column(JSONType, nullable=True)
    recommendations = Column(JSONType, nullable=True)
    generated_by = Column(String(64), nullable=True)
    generated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
