"""Clinical alerts created by the scheduled checks."""
import logging

from sqlalchemy.orm import Session

from gtms.models.alert import Alert

logger = logging.getLogger(__name__)


def create_alert(
    db: Session,
    patient_id: str,
    alert_type: str,
    severity: str,
    message: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
) -> str | None:
    """Insert one pending alert. Returns its id, or None when the insert failed (logged)."""
    row = Alert(
        patient_id=patient_id,
        alert_type=alert_type,
        severity=severity,
        alert_message=message,
        related_entity_type=entity_type,
        related_entity_id=str(entity_id) if entity_id is not None else None,
    )
    try:
        db.add(row)
        db.commit()
        return row.id
    except Exception as e:
        logger.exception("Create alert failed for patient %s (%s): %s", patient_id, alert_type, e)
        db.rollback()
        return None
