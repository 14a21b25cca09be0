"""Title/body/priority for appointment reminders."""
from datetime import date

from gtms.models.appointment import Appointment


def _fmt_time(appointment: Appointment) -> str:
    return appointment.appointment_time.strftime("%H:%M") if appointment.appointment_time else "-"


def _with_doctor(appointment: Appointment) -> str:
    return appointment.doctor_name or "your doctor"


def build_appointment_reminder(appointment: Appointment, today: date) -> tuple[str, str, str]:
    """Return (title, body, priority). Escalates to high priority one day out or less."""
    at = _fmt_time(appointment)
    days_until = (appointment.appointment_date - today).days
    if days_until <= 0:
        title = "Appointment today"
        body = f"Today you have an appointment with {_with_doctor(appointment)} at {at}"
    elif days_until == 1:
        title = "Appointment tomorrow"
        body = f"Tomorrow you have an appointment with {_with_doctor(appointment)} at {at}"
    else:
        title = f"Appointment in {days_until} days"
        body = (
            f"In {days_until} days you have an appointment with {_with_doctor(appointment)} "
            f"on {appointment.appointment_date.isoformat()}"
        )
    return title, body, "high" if days_until <= 1 else "medium"
