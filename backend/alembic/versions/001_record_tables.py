"""Record-store tables read by the scheduled checks: medications, reminders, usage, inventory, IOP, appointments."""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "medications",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("generic_name", sa.String(255), nullable=True),
    )
    op.create_table(
        "medication_reminders",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("prescription_id", sa.String(64), nullable=True),
        sa.Column("medication_id", sa.String(32), sa.ForeignKey("medications.id"), nullable=False),
        sa.Column("reminder_time", sa.Time(), nullable=False),
        sa.Column("days_of_week", sa.String(32), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("eye", sa.String(8), nullable=True),
        sa.Column("drops_count", sa.Integer(), nullable=True),
        sa.Column("notification_channels", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_medication_reminders_patient_id", "medication_reminders", ["patient_id"])
    op.create_table(
        "medication_usage_records",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("reminder_id", sa.String(32), sa.ForeignKey("medication_reminders.id"), nullable=False),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("medication_id", sa.String(32), nullable=True),
        sa.Column("scheduled_time", sa.DateTime(), nullable=False),
        sa.Column("actual_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_medication_usage_records_reminder_id", "medication_usage_records", ["reminder_id"])
    op.create_index("ix_medication_usage_records_patient_id", "medication_usage_records", ["patient_id"])
    op.create_index("ix_medication_usage_records_scheduled_time", "medication_usage_records", ["scheduled_time"])
    op.create_table(
        "medication_inventory",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("medication_id", sa.String(32), sa.ForeignKey("medications.id"), nullable=False),
        sa.Column("bottles_dispensed", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("dispensed_date", sa.Date(), nullable=True),
        sa.Column("expected_end_date", sa.Date(), nullable=True),
        sa.Column("is_depleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_medication_inventory_patient_id", "medication_inventory", ["patient_id"])
    op.create_table(
        "iop_measurements",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("measurement_date", sa.Date(), nullable=False),
        sa.Column("measurement_time", sa.Time(), nullable=True),
        sa.Column("left_eye_iop", sa.Float(), nullable=True),
        sa.Column("right_eye_iop", sa.Float(), nullable=True),
        sa.Column("measured_at_hospital", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_iop_measurements_patient_id", "iop_measurements", ["patient_id"])
    op.create_index("ix_iop_measurements_measurement_date", "iop_measurements", ["measurement_date"])
    op.create_table(
        "appointments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("doctor_name", sa.String(255), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=True),
        sa.Column("appointment_type", sa.String(64), nullable=True),
        sa.Column("appointment_location", sa.String(255), nullable=True),
        sa.Column("appointment_status", sa.String(16), nullable=False, server_default="scheduled"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_appointment_date", "appointments", ["appointment_date"])


def downgrade() -> None:
    op.drop_table("appointments")
    op.drop_table("iop_measurements")
    op.drop_table("medication_inventory")
    op.drop_table("medication_usage_records")
    op.drop_table("medication_reminders")
    op.drop_table("medications")
