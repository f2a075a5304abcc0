"""Revision 0002: server_details table

One hardware profile row per server, seeded on the first discovery pass.
UNIQUE on server_id keeps two overlapping passes from seeding twice.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""
import sqlalchemy as sa

from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "server_details",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("server_id", sa.Integer(), nullable=False),
        sa.Column("cpu_model", sa.Text(), nullable=False),
        sa.Column("cpu_cores", sa.Integer(), nullable=False),
        sa.Column("memory_total", sa.Float(), nullable=False),
        sa.Column("disk_total", sa.Float(), nullable=False),
        sa.Column("os_version", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(
            ["server_id"],
            ["servers.id"],
            name="fk_server_details_server_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_server_details"),
        sa.UniqueConstraint("server_id", name="uq_server_details_server_id"),
    )


def downgrade():
    op.drop_table("server_details")
