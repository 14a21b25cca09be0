"""Runs 3x/day: alert + notify for every IOP reading today above the clinical threshold."""
import asyncio
import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session, sessionmaker

from gtms.core.constants import ALERT_HIGH_IOP, HIGH_IOP_THRESHOLD_MMHG, TYPE_HEALTH_ALERT
from gtms.db.session import SessionLocal
from gtms.models.iop_measurement import IopMeasurement
from gtms.services.alerts import create_alert
from gtms.services.notifier import Notifier

logger = logging.getLogger(__name__)


def _fmt(value: float | None) -> str:
    return f"{value:g} mmHg" if value is not None else "-"


async def run_high_iop_check(db: Session, notifier: Notifier, now: datetime | None = None) -> int:
    """One alert (high) and one health_alert notification (high) per measurement row. Returns rows processed."""
    today = (now or datetime.now()).date()
    rows = (
        db.query(IopMeasurement)
        .filter(
            IopMeasurement.measurement_date == today,
            or_(
                IopMeasurement.left_eye_iop > HIGH_IOP_THRESHOLD_MMHG,
                IopMeasurement.right_eye_iop > HIGH_IOP_THRESHOLD_MMHG,
            ),
        )
        .all()
    )
    snapshot = [(m.id, m.patient_id, m.left_eye_iop, m.right_eye_iop) for m in rows]
    for measurement_id, patient_id, left, right in snapshot:
        message = f"Eye pressure above normal: left {_fmt(left)}, right {_fmt(right)}"
        try:
            create_alert(db, patient_id, ALERT_HIGH_IOP, "high", message, "iop_measurements", measurement_id)
            await notifier.notify(
                db,
                patient_id,
                TYPE_HEALTH_ALERT,
                "High eye pressure",
                message,
                "high",
                entity_type="iop_measurements",
                entity_id=measurement_id,
                action_url="/iop",
                metadata={"measurement_id": measurement_id, "left_eye_iop": left, "right_eye_iop": right},
            )
        except Exception as e:
            logger.exception("High IOP check failed for measurement %s: %s", measurement_id, e)
            db.rollback()
    logger.info("Checked high IOP: %s measurements above %s mmHg", len(snapshot), HIGH_IOP_THRESHOLD_MMHG)
    return len(snapshot)


def run_high_iop_job(notifier: Notifier, session_factory: sessionmaker = SessionLocal) -> int:
    db = session_factory()
    try:
        # Runs on a scheduler worker thread; the push fan-out gets its own event loop here.
        return asyncio.run(run_high_iop_check(db, notifier))
    finally:
        db.close()
