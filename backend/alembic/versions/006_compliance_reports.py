"""Add compliance_reports (immutable overall report snapshots)."""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "compliance_reports",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("patient_id", sa.String(64), nullable=False),
        sa.Column("report_type", sa.String(16), nullable=False, server_default="overall"),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("total_scheduled", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_missed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("compliance_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("grade", sa.String(16), nullable=False),
        sa.Column("detailed_data", _json, nullable=True),
        sa.Column("recommendations", _json, nullable=True),
        sa.Column("generated_by", sa.String(64), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_compliance_reports_patient_id", "compliance_reports", ["patient_id"])
    op.create_index("ix_compliance_reports_generated_at", "compliance_reports", ["generated_at"])


def downgrade() -> None:
    op.drop_table("compliance_reports")
