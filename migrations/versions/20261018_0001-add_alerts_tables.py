"""Add alerts and alert audit log tables

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c4e7f20b31"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACTIVE_STATUS_FILTER = "status IN ('pending', 'acknowledged')"


def upgrade() -> None:
    op.create_table(
        "alerts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("alert_type", sa.String(), nullable=False),
        sa.Column("reference_type", sa.String(), nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("firm_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("alert_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("priority", sa.String(), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("notification_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("acknowledged_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alerts_firm_id", "alerts", ["firm_id"])
    op.create_index("ix_alerts_status", "alerts", ["status"])
    op.create_index("ix_alerts_status_priority", "alerts", ["status", "priority"])
    # At most one open alert per dedup key
    op.create_index(
        "uq_alerts_active_dedup_key",
        "alerts",
        ["reference_type", "reference_id", "alert_type"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_FILTER),
        sqlite_where=sa.text(ACTIVE_STATUS_FILTER),
    )

    op.create_table(
        "alert_audit_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("source", sa.String(), nullable=False, server_default="api"),
        sa.Column("extra_data", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alert_audit_logs_entity_type", "alert_audit_logs", ["entity_type"])
    op.create_index("ix_alert_audit_logs_entity_id", "alert_audit_logs", ["entity_id"])
    op.create_index("ix_alert_audit_logs_action", "alert_audit_logs", ["action"])
    op.create_index("ix_alert_audit_logs_created_at", "alert_audit_logs", ["created_at"])
    op.create_index("ix_alert_audit_entity", "alert_audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_table("alert_audit_logs")
    op.drop_index("uq_alerts_active_dedup_key", table_name="alerts")
    op.drop_index("ix_alerts_status_priority", table_name="alerts")
    op.drop_index("ix_alerts_status", table_name="alerts")
    op.drop_index("ix_alerts_firm_id", table_name="alerts")
    op.drop_table("alerts")
