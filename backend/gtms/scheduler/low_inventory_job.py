"""Runs daily: notify when a medication bottle is expected to run out within the lookahead."""
import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session, sessionmaker

from gtms.core.constants import LOW_INVENTORY_LOOKAHEAD_DAYS, TYPE_MEDICATION_INVENTORY
from gtms.db.session import SessionLocal
from gtms.models.medication import MedicationInventory
from gtms.services.notifier import Notifier

logger = logging.getLogger(__name__)


async def run_low_inventory_check(db: Session, notifier: Notifier, now: datetime | None = None) -> int:
    """One medication_inventory notification (high) per inventory row; no alert for this category."""
    today = (now or datetime.now()).date()
    rows = (
        db.query(MedicationInventory)
        .filter(
            MedicationInventory.is_depleted.is_(False),
            MedicationInventory.expected_end_date.isnot(None),
            MedicationInventory.expected_end_date <= today + timedelta(days=LOW_INVENTORY_LOOKAHEAD_DAYS),
        )
        .all()
    )
    snapshot = [
        (i.id, i.patient_id, i.medication.name if i.medication else "medication", i.expected_end_date)
        for i in rows
    ]
    for inventory_id, patient_id, medication_name, end_date in snapshot:
        days_left = (end_date - today).days
        message = f"{medication_name} will run out in {days_left} days. Please get a refill."
        try:
            await notifier.notify(
                db,
                patient_id,
                TYPE_MEDICATION_INVENTORY,
                "Medication running low",
                message,
                "high",
                entity_type="medication_inventory",
                entity_id=inventory_id,
                action_url="/medication-inventory",
                metadata={"inventory_id": inventory_id, "medication_name": medication_name, "days_left": days_left},
            )
        except Exception as e:
            logger.exception("Low inventory check failed for inventory %s: %s", inventory_id, e)
            db.rollback()
    logger.info("Checked low inventory: %s medications", len(snapshot))
    return len(snapshot)


def run_low_inventory_job(notifier: Notifier, session_factory: sessionmaker = SessionLocal) -> int:
    db = session_factory()
    try:
        return asyncio.run(run_low_inventory_check(db, notifier))
    finally:
        db.close()
