"""Revision 0004: discovery_results and open_ports tables

discovery_results is the audit trail of every discovery pass. open_ports
rows belong to exactly one result and are removed with it.

Revision ID: 0004
Revises: 0003
Create Date: 2026-10-19
"""
import sqlalchemy as sa

from alembic import op

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "discovery_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("status", sa.Text(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("start_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("end_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("os_name", sa.Text(), nullable=True),
        sa.Column("os_version", sa.Text(), nullable=True),
        sa.Column("cpu_model", sa.Text(), nullable=True),
        sa.Column("cpu_count", sa.Integer(), nullable=True),
        sa.Column("memory_total_gb", sa.Float(), nullable=True),
        sa.Column("disk_total_gb", sa.Float(), nullable=True),
        sa.Column("disk_free_gb", sa.Float(), nullable=True),
        sa.Column("last_boot_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["server_id"],
            ["servers.id"],
            name="fk_discovery_results_server_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_discovery_results"),
    )
    op.create_index("ix_discovery_results_server_id", "discovery_results", ["server_id"])
    op.create_index("ix_discovery_results_success", "discovery_results", ["success"])

    op.create_table(
        "open_ports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("discovery_id", sa.Integer(), nullable=False),
        sa.Column("local_port", sa.Integer(), nullable=False),
        sa.Column("local_ip", sa.Text(), nullable=True),
        sa.Column("remote_port", sa.Integer(), nullable=True),
        sa.Column("remote_ip", sa.Text(), nullable=True),
        sa.Column("state", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("process_id", sa.Integer(), nullable=True),
        sa.Column("process_name", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["discovery_id"],
            ["discovery_results.id"],
            name="fk_open_ports_discovery_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_open_ports"),
    )
    op.create_index("ix_open_ports_discovery_id", "open_ports", ["discovery_id"])
    op.create_index("ix_open_ports_local_port", "open_ports", ["local_port"])


def downgrade():
    op.drop_index("ix_open_ports_local_port", table_name="open_ports")
    op.drop_index("ix_open_ports_discovery_id", table_name="open_ports")
    op.drop_table("open_ports")
    op.drop_index("ix_discovery_results_success", table_name="discovery_results")
    op.drop_index("ix_discovery_results_server_id", table_name="discovery_results")
    op.drop_table("discovery_results")
