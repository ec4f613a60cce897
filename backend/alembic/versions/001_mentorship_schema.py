# backend/alembic/versions/001_mentorship_schema.py
"""Mentorship schema: users, mentor profiles, slots, sessions, ledger, notifications

Revision ID: 001_mentorship_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_mentorship_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""
    op.execute(
        f"""
        DO $$
        DECLARE
            extensions_schema_exists BOOLEAN;
            extension_installed BOOLEAN;
        BEGIN
            SELECT EXISTS (
                SELECT 1 FROM pg_namespace WHERE nspname = 'extensions'
            ) INTO extensions_schema_exists;

            SELECT EXISTS (
                SELECT 1 FROM pg_extension WHERE extname = '{extension_name}'
            ) INTO extension_installed;

            IF NOT extension_installed THEN
                IF extensions_schema_exists THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END
        $$;
        """
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create the mentorship tables."""
    bind = op.get_bind()
    is_postgres = bind is not None and bind.dialect.name == "postgresql"

    op.create_table(
        "users",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("balance", sa.Numeric(10, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("balance >= 0", name="check_balance_non_negative"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "mentor_profiles",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("weekly_availability", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id"),
        sa.CheckConstraint("hourly_rate >= 0", name="check_hourly_rate_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_mentor_profiles_status"
        ),
    )
    op.create_index("ix_mentor_profiles_id", "mentor_profiles", ["id"])
    op.create_index("ix_mentor_profiles_user_id", "mentor_profiles", ["user_id"])
    op.create_index("ix_mentor_profiles_status", "mentor_profiles", ["status"])

    op.create_table(
        "availability_slots",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("mentor_id", sa.String(26), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("is_weekly_slot", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["mentor_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_availability_slots_mentor_date",
        "availability_slots",
        ["mentor_id", "date", "start_time"],
    )

    op.create_table(
        "mentorship_sessions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("mentor_id", sa.String(26), nullable=False),
        sa.Column("mentee_id", sa.String(26), nullable=False),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_by_id", sa.String(26), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["mentor_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["mentee_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["cancelled_by_id"], ["users.id"]),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'confirmed', "
            "'in_progress', 'completed', 'cancelled')",
            name="ck_mentorship_sessions_status",
        ),
        sa.CheckConstraint("duration_minutes > 0", name="check_session_duration_positive"),
        sa.CheckConstraint("price >= 0", name="check_session_price_non_negative"),
        sa.CheckConstraint("end_time > start_time", name="check_session_time_order"),
    )
    op.create_index("ix_mentorship_sessions_id", "mentorship_sessions", ["id"])
    op.create_index("ix_mentorship_sessions_status", "mentorship_sessions", ["status"])
    op.create_index(
        "ix_mentorship_sessions_mentor_start", "mentorship_sessions", ["mentor_id", "start_time"]
    )
    op.create_index(
        "ix_mentorship_sessions_mentee_start", "mentorship_sessions", ["mentee_id", "start_time"]
    )

    if is_postgres:
        # Backstop for the booking lock: two live sessions of one mentor can never overlap.
        _create_extension_prefer_extensions_schema("btree_gist")
        op.execute(
            """
            ALTER TABLE mentorship_sessions
              ADD CONSTRAINT mentorship_sessions_no_overlap_per_mentor
              EXCLUDE USING gist (
                mentor_id WITH =,
                tsrange(start_time, end_time, '[)') WITH &&
              )
              WHERE (status NOT IN ('cancelled', 'rejected'))
            """
        )

    op.create_table(
        "balance_transactions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("session_id", sa.String(26), nullable=True),
        sa.Column("related_user_id", sa.String(26), nullable=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["session_id"], ["mentorship_sessions.id"]),
        sa.ForeignKeyConstraint(["related_user_id"], ["users.id"]),
        sa.CheckConstraint(
            "type IN ('session_payment', 'session_earning', 'session_refund')",
            name="ck_balance_transactions_type",
        ),
    )
    op.create_index(
        "ix_balance_transactions_user_created", "balance_transactions", ["user_id", "created_at"]
    )
    op.create_index("ix_balance_transactions_session", "balance_transactions", ["session_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])
    op.create_index(
        "ix_notifications_user_created_at",
        "notifications",
        ["user_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drop the mentorship tables."""
    op.drop_table("notifications")
    op.drop_table("balance_transactions")
    op.drop_table("mentorship_sessions")
    op.drop_table("availability_slots")
    op.drop_table("mentor_profiles")
    op.drop_table("users")
