"""Compliance reports: build on demand (overall reports are saved) and list saved snapshots."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from gtms.core.constants import DEFAULT_COMPLIANCE_HISTORY_LIMIT, DEFAULT_REPORT_PERIOD_DAYS
from gtms.core.security import CurrentUser, get_current_patient
from gtms.db.session import get_db
from gtms.models.compliance_report import ComplianceReport
from gtms.services.compliance import REPORT_OVERALL, build_compliance_report

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/compliance-report")
def compliance_report(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    period: int = Query(DEFAULT_REPORT_PERIOD_DAYS, ge=1, le=365),
    type: str = Query(REPORT_OVERALL, pattern="^(overall|medication|appointment|notification)$"),
) -> dict[str, Any]:
    return jsonable_encoder(build_compliance_report(db, user.user_id, period_days=period, report_type=type))


@router.get("/compliance-history")
def compliance_history(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_patient),
    limit: int = Query(DEFAULT_COMPLIANCE_HISTORY_LIMIT, ge=1, le=120),
) -> dict[str, Any]:
    rows = (
        db.query(ComplianceReport)
        .filter(ComplianceReport.patient_id == user.user_id)
        .order_by(ComplianceReport.generated_at.desc())
        .limit(limit)
        .all()
    )
    return jsonable_encoder({
        "compliance_history": [
            {
                "report_id": r.id,
                "report_type": r.report_type,
                "period_start": r.period_start,
                "period_end": r.period_end,
                "period_days": (r.period_end - r.period_start).days,
                "compliance_rate": r.compliance_rate,
                "grade": r.grade,
                "generated_at": r.generated_at,
            }
            for r in rows
        ]
    })
