"""Add sound, channel flags, push state, action_url and metadata to notifications.

Databases without this revision keep working: the notification store falls back to the columns
from 002.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.add_column("notifications", sa.Column("sound_file", sa.String(64), nullable=True))
    op.add_column("notifications", sa.Column("sound_enabled", sa.Boolean(), nullable=False, server_default=sa.true()))
    op.add_column("notifications", sa.Column("vibration_enabled", sa.Boolean(), nullable=False, server_default=sa.true()))
    op.add_column("notifications", sa.Column("push_enabled", sa.Boolean(), nullable=False, server_default=sa.true()))
    op.add_column("notifications", sa.Column("push_sent", sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column("notifications", sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("notifications", sa.Column("action_url", sa.String(255), nullable=True))
    op.add_column("notifications", sa.Column("metadata", _json, nullable=True))


def downgrade() -> None:
    for column in (
        "metadata",
        "action_url",
        "sent_at",
        "push_sent",
        "push_enabled",
        "vibration_enabled",
        "sound_enabled",
        "sound_file",
    ):
        op.drop_column("notifications", column)
