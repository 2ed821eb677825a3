"""providers and bookings

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'confirmed')"


def upgrade():
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("display_name", sa.Text, nullable=False),
        sa.Column("is_active", sa.Integer, nullable=False, server_default=sa.text("1")),
        sa.Column("availability", sa.Text, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("description", sa.Text),
        sa.Column("category", sa.Text),
        sa.Column("created_at", sa.Text, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("provider_id", sa.Integer, sa.ForeignKey("providers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Text, nullable=False),
        sa.Column("scheduled_date", sa.Text, nullable=False),
        sa.Column("scheduled_time", sa.Integer, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default=sa.text("'pending'")),
        sa.Column("service_name", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("price", sa.Float),
        sa.Column("extra", sa.Text),
        sa.Column("decline_reason", sa.Text),
        sa.Column("created_at", sa.Text, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_bookings_provider_date", "bookings", ["provider_id", "scheduled_date"])
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["provider_id", "scheduled_date", "scheduled_time"],
        unique=True,
        sqlite_where=sa.text(ACTIVE_STATUS_CLAUSE),
        postgresql_where=sa.text(ACTIVE_STATUS_CLAUSE),
    )


def downgrade():
    op.drop_index("uq_bookings_active_slot", table_name="bookings")
    op.drop_index("ix_bookings_provider_date", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("providers")
