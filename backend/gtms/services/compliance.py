"""
Compliance Engine: medication, appointment and notification compliance over a period.

Rates are percentages rounded to 2 decimals and are 0 (never NaN) when nothing was scheduled.
Grades use inclusive lower bounds (95 excellent, 80 good, 60 fair, 40 poor, else critical).
Overall reports are persisted as an immutable ComplianceReport row; partial report types are
computed only.
"""
import logging
import statistics
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from gtms.core.constants import COMPLIANCE_GRADE_FLOOR, COMPLIANCE_GRADES, DEFAULT_REPORT_PERIOD_DAYS
from gtms.models.appointment import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_NO_SHOW,
    APPOINTMENT_RESCHEDULED,
    Appointment,
)
from gtms.models.compliance_report import ComplianceReport
from gtms.models.medication import (
    USAGE_DELAYED,
    USAGE_SKIPPED,
    USAGE_TAKEN,
    MedicationReminder,
    MedicationUsageRecord,
)
from gtms.services.analytics import rate, summarize_notifications

logger = logging.getLogger(__name__)

REPORT_OVERALL = "overall"
REPORT_MEDICATION = "medication"
REPORT_APPOINTMENT = "appointment"
REPORT_NOTIFICATION = "notification"

MEDICATION_GOOD_RATE = 80
MEDICATION_EXCELLENT_RATE = 95
APPOINTMENT_TARGET_RATE = 90


def compliance_grade(value: float) -> str:
    for lower_bound, grade in COMPLIANCE_GRADES:
        if value >= lower_bound:
            return grade
    return COMPLIANCE_GRADE_FLOOR


def _grade_of(part: int, total: int) -> str:
    # graded on the exact ratio; the displayed rate is rounded
    return compliance_grade(part / total * 100 if total else 0.0)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def medication_compliance(db: Session, patient_id: str, start: datetime, end: datetime) -> tuple[list[dict], dict]:
    """Per-medication counts over active reminders, plus the overall rollup."""
    reminders = (
        db.query(MedicationReminder)
        .filter(MedicationReminder.patient_id == patient_id, MedicationReminder.is_active.is_(True))
        .all()
    )
    by_reminder = {r.id: r for r in reminders}
    records = []
    if by_reminder:
        records = (
            db.query(MedicationUsageRecord)
            .filter(
                MedicationUsageRecord.reminder_id.in_(list(by_reminder)),
                MedicationUsageRecord.scheduled_time >= start,
                MedicationUsageRecord.scheduled_time <= end,
            )
            .all()
        )

    meds: dict[str, dict[str, Any]] = {}
    for r in reminders:
        meds.setdefault(r.medication_id, {
            "medication_id": r.medication_id,
            "medication_name": r.medication.name if r.medication else None,
        })
    status_counts: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    delays: dict[str, list[float]] = defaultdict(list)
    days: dict[str, set] = defaultdict(set)
    for rec in records:
        med_id = by_reminder[rec.reminder_id].medication_id
        status_counts[med_id][rec.status] += 1
        days[med_id].add(rec.scheduled_time.date())
        if rec.status == USAGE_DELAYED and rec.actual_time is not None:
            delays[med_id].append((rec.actual_time - rec.scheduled_time).total_seconds() / 60)

    rows = []
    for med_id, info in meds.items():
        counts = status_counts[med_id]
        total = sum(counts.values())
        rows.append({
            **info,
            "days_with_reminders": len(days[med_id]),
            "total_reminders": total,
            "taken_count": counts[USAGE_TAKEN],
            "skipped_count": counts[USAGE_SKIPPED],
            "delayed_count": counts[USAGE_DELAYED],
            "compliance_rate": rate(counts[USAGE_TAKEN], total),
            "grade": _grade_of(counts[USAGE_TAKEN], total),
            "avg_delay_minutes": round(statistics.mean(delays[med_id]), 2) if delays[med_id] else None,
        })

    total = sum(r["total_reminders"] for r in rows)
    taken = sum(r["taken_count"] for r in rows)
    overall_rate = rate(taken, total)
    overall = {
        "total_reminders": total,
        "total_taken": taken,
        "compliance_rate": overall_rate,
        "grade": _grade_of(taken, total),
    }
    return rows, overall


def appointment_compliance(db: Session, patient_id: str, start: datetime, end: datetime) -> dict[str, Any]:
    rows = (
        db.query(Appointment.appointment_status)
        .filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date >= start.date(),
            Appointment.appointment_date <= end.date(),
        )
        .all()
    )
    statuses = [r[0] for r in rows]
    attended = statuses.count(APPOINTMENT_COMPLETED)
    return {
        "total_appointments": len(statuses),
        "attended": attended,
        "missed": statuses.count(APPOINTMENT_NO_SHOW),
        "cancelled": statuses.count(APPOINTMENT_CANCELLED),
        "rescheduled": statuses.count(APPOINTMENT_RESCHEDULED),
        "attendance_rate": rate(attended, len(statuses)),
    }


# ---------------------------------------------------------------------------
# Recommendations: (section, predicate on section data, recommendation). Order is output order.
# ---------------------------------------------------------------------------

_RECOMMENDATION_RULES = [
    (
        "overall_medication_compliance",
        lambda s: s["compliance_rate"] < MEDICATION_GOOD_RATE,
        {
            "type": "medication",
            "priority": "high",
            "title": "Improve taking your eye drops on schedule",
            "description": "Your on-time medication rate is below target. Extra reminders can help.",
            "actions": [
                "Set a reminder 15 minutes before each dose",
                "Repeat the reminder every 5 minutes until the dose is logged",
                "Use location-based reminders",
            ],
        },
    ),
    (
        "overall_medication_compliance",
        lambda s: MEDICATION_GOOD_RATE <= s["compliance_rate"] < MEDICATION_EXCELLENT_RATE,
        {
            "type": "medication",
            "priority": "medium",
            "title": "Medication use is on track",
            "description": "Keep up your routine to stay consistent.",
            "actions": [
                "Review reminder times to fit your daily routine",
                "Keep tracking your treatment results regularly",
            ],
        },
    ),
    (
        "appointment_compliance",
        lambda s: s["total_appointments"] > 0 and s["attendance_rate"] < APPOINTMENT_TARGET_RATE,
        {
            "type": "appointment",
            "priority": "high",
            "title": "Attend your scheduled appointments",
            "description": "Regular follow-up visits are important for glaucoma control.",
            "actions": [
                "Set a reminder 3 days before each appointment",
                "Add a reminder on the appointment day",
                "Contact the care team if you cannot make it",
            ],
        },
    ),
]


def generate_recommendations(report: dict[str, Any]) -> list[dict[str, Any]]:
    out = []
    for section, predicate, recommendation in _RECOMMENDATION_RULES:
        data = report.get(section)
        if data and predicate(data):
            out.append({**recommendation, "actions": list(recommendation["actions"])})
    return out


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def build_compliance_report(
    db: Session,
    patient_id: str,
    period_days: int = DEFAULT_REPORT_PERIOD_DAYS,
    report_type: str = REPORT_OVERALL,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Compute the report over [now - period_days, now]. now is clinic-local wall time (naive);
    notification timestamps are compared in UTC.
    """
    now = now or datetime.now()
    start = now - timedelta(days=period_days)
    report: dict[str, Any] = {
        "patient_id": patient_id,
        "report_type": report_type,
        "period_start": start.date().isoformat(),
        "period_end": now.date().isoformat(),
        "period_days": period_days,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    if report_type in (REPORT_MEDICATION, REPORT_OVERALL):
        rows, overall = medication_compliance(db, patient_id, start, now)
        report["medication_compliance"] = rows
        report["overall_medication_compliance"] = overall

    if report_type in (REPORT_APPOINTMENT, REPORT_OVERALL):
        report["appointment_compliance"] = appointment_compliance(db, patient_id, start, now)

    if report_type in (REPORT_NOTIFICATION, REPORT_OVERALL):
        utc_start = start.astimezone(timezone.utc)  # naive values are read as server local time
        report["notification_compliance"] = summarize_notifications(db, patient_id, utc_start)

    report["recommendations"] = generate_recommendations(report)

    if report_type == REPORT_OVERALL:
        report["report_id"] = save_report_snapshot(db, patient_id, report, start, now)
    return report


def save_report_snapshot(db: Session, patient_id: str, report: dict[str, Any], start: datetime, end: datetime) -> str:
    med = report.get("overall_medication_compliance") or {}
    total = med.get("total_reminders", 0)
    taken = med.get("total_taken", 0)
    row = ComplianceReport(
        patient_id=patient_id,
        report_type=REPORT_OVERALL,
        period_start=start.date(),
        period_end=end.date(),
        total_scheduled=total,
        total_completed=taken,
        total_missed=total - taken,
        compliance_rate=med.get("compliance_rate", 0.0),
        grade=med.get("grade") or compliance_grade(0),
        detailed_data=jsonable_encoder(report),
        recommendations=jsonable_encoder(report["recommendations"]),
        generated_by=patient_id,
    )
    db.add(row)
    db.commit()
    logger.info("Saved compliance report %s for patient %s (%s%%)", row.id, patient_id, row.compliance_rate)
    return row.id
