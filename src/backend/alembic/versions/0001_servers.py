"""Revision 0001: servers and server_tags tables

Creates the server inventory. Status is one of 'online', 'offline',
'error'; new servers start 'offline' until their first discovery pass.

Revision ID: 0001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "servers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("hostname", sa.Text(), nullable=False),
        sa.Column("ip", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("os_type", sa.Text(), nullable=True),
        sa.Column("region", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Text(),
            sa.CheckConstraint(
                "status IN ('online', 'offline', 'error')",
                name="ck_servers_status",
            ),
            server_default=sa.text("'offline'"),
            nullable=False,
        ),
        sa.Column("last_checked", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_servers"),
        sa.UniqueConstraint("hostname", name="uq_servers_hostname"),
    )
    op.create_index("ix_servers_os_type", "servers", ["os_type"])
    op.create_index("ix_servers_region", "servers", ["region"])

    op.create_table(
        "server_tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False),
        sa.Column("tag_name", sa.Text(), nullable=False),
        sa.Column("tag_value", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["server_id"],
            ["servers.id"],
            name="fk_server_tags_server_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_server_tags"),
    )
    op.create_index("ix_server_tags_server_id", "server_tags", ["server_id"])
    op.create_index("ix_server_tags_tag_name", "server_tags", ["tag_name"])


def downgrade():
    op.drop_index("ix_server_tags_tag_name", table_name="server_tags")
    op.drop_index("ix_server_tags_server_id", table_name="server_tags")
    op.drop_table("server_tags")
    op.drop_index("ix_servers_region", table_name="servers")
    op.drop_index("ix_servers_os_type", table_name="servers")
    op.drop_table("servers")
