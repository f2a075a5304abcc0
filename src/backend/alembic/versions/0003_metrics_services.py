"""Revision 0003: server_metrics and server_services tables

Both are append-only time series keyed by server. Readers take the newest
row by timestamp, breaking ties on the highest id.

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-19
"""
import sqlalchemy as sa

from alembic import op

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "server_metrics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False),
        sa.Column("cpu_usage", sa.Float(), nullable=False),
        sa.Column("memory_usage", sa.Float(), nullable=False),
        sa.Column("disk_usage", sa.Float(), nullable=False),
        sa.Column(
            "recorded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["server_id"],
            ["servers.id"],
            name="fk_server_metrics_server_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_server_metrics"),
    )
    op.create_index(
        "ix_server_metrics_server_recorded", "server_metrics", ["server_id", "recorded_at"]
    )

    op.create_table(
        "server_services",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False),
        sa.Column("service_name", sa.Text(), nullable=False),
        sa.Column("service_status", sa.Text(), nullable=False),
        sa.Column(
            "last_checked",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["server_id"],
            ["servers.id"],
            name="fk_server_services_server_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_server_services"),
    )
    op.create_index(
        "ix_server_services_server_checked", "server_services", ["server_id", "last_checked"]
    )


def downgrade():
    op.drop_index("ix_server_services_server_checked", table_name="server_services")
    op.drop_table("server_services")
    op.drop_index("ix_server_metrics_server_recorded", table_name="server_metrics")
    op.drop_table("server_metrics")
