"""loyalty_core_schema

Revision ID: a3c91e5d7b20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "a3c91e5d7b20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "loyalty_programs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("program_type", sa.String(32), nullable=False),
        sa.Column("threshold", sa.Numeric(12, 2), nullable=False),
        sa.Column("time_limit_days", sa.Integer(), nullable=True),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("reward_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("almost_unlocked_percent", sa.SmallInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "program_type IN ('visit_based','spend_based','time_limited')",
            name="ck_loyalty_programs_program_type",
        ),
        sa.CheckConstraint(
            "reward_type IN ('free_service','fixed_discount','percentage_discount')",
            name="ck_loyalty_programs_reward_type",
        ),
        sa.CheckConstraint("threshold > 0", name="ck_loyalty_programs_threshold_positive"),
        sa.CheckConstraint("reward_value > 0", name="ck_loyalty_programs_reward_value_positive"),
        sa.CheckConstraint(
            "reward_type <> 'percentage_discount' OR reward_value <= 100",
            name="ck_loyalty_programs_percentage_max",
        ),
        sa.CheckConstraint(
            "program_type <> 'time_limited' OR time_limit_days >= 1",
            name="ck_loyalty_programs_time_limit_required",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_loyalty_programs"),
    )
    op.create_index("idx_loyalty_programs_business", "loyalty_programs", ["business_id", "created_at"])
    op.create_index(
        "uq_loyalty_programs_business_active",
        "loyalty_programs",
        ["business_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "customer_progress",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=True),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_spent", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("first_visit_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_visit_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reward_unlocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reward_redeemed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("opt_out", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("visit_count >= 0", name="ck_customer_progress_visit_count_non_negative"),
        sa.CheckConstraint("total_spent >= 0", name="ck_customer_progress_total_spent_non_negative"),
        sa.CheckConstraint(
            "reward_unlocked OR NOT reward_redeemed",
            name="ck_customer_progress_redeemed_requires_unlocked",
        ),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["loyalty_programs.id"],
            name="fk_customer_progress_program_id_loyalty_programs",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_customer_progress"),
        sa.UniqueConstraint("customer_id", "business_id", name="uq_customer_progress_customer_business"),
    )
    op.create_index("idx_customer_progress_program", "customer_progress", ["program_id"])

    op.create_table(
        "loyalty_bookings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("booking_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("service_ids", sa.JSON(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_amount >= 0", name="ck_loyalty_bookings_total_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_loyalty_bookings"),
        sa.UniqueConstraint("booking_id", name="uq_loyalty_bookings_booking_id"),
    )
    op.create_index(
        "idx_loyalty_bookings_customer_business",
        "loyalty_bookings",
        ["customer_id", "business_id", "completed_at"],
    )

    op.create_table(
        "vouchers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("reward_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("expired", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_booking_id", sa.String(64), nullable=True),
        sa.Column("expiring_notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "reward_type IN ('free_service','fixed_discount','percentage_discount')",
            name="ck_vouchers_reward_type",
        ),
        sa.CheckConstraint("NOT (used AND expired)", name="ck_vouchers_used_or_expired"),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["loyalty_programs.id"],
            name="fk_vouchers_program_id_loyalty_programs",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_vouchers"),
        sa.UniqueConstraint("code", name="uq_vouchers_code"),
    )
    op.create_index("idx_vouchers_customer_program", "vouchers", ["customer_id", "program_id"])
    op.create_index("idx_vouchers_open_expires", "vouchers", ["used", "expired", "expires_at"])

    op.create_table(
        "redemption_ledger",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("booking_id", sa.String(64), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("value_gbp", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deducted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("points > 0", name="ck_redemption_ledger_points_positive"),
        sa.CheckConstraint(
            "status IN ('pending','deducted','released')",
            name="ck_redemption_ledger_status",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_redemption_ledger"),
    )
    op.create_index(
        "idx_redemption_ledger_user_status_created",
        "redemption_ledger",
        ["user_id", "status", "created_at"],
    )
    op.create_index(
        "uq_redemption_ledger_booking_live",
        "redemption_ledger",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending','deducted')"),
    )

    op.create_table(
        "points_accounts",
        sa.Column("user_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_points_accounts_balance_non_negative"),
        sa.PrimaryKeyConstraint("user_id", name="pk_points_accounts"),
    )

    op.create_table(
        "points_ledger",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("booking_id", sa.String(64), nullable=True),
        sa.Column("entry_type", sa.String(32), nullable=False),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("idempotency_key", sa.String(96), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_points_ledger_amount_positive"),
        sa.CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_points_ledger_direction"),
        sa.CheckConstraint(
            "entry_type IN ('BOOKING_EARN','REDEMPTION_DEBIT')",
            name="ck_points_ledger_entry_type",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_points_ledger"),
        sa.UniqueConstraint("idempotency_key", name="uq_points_ledger_idempotency_key"),
    )
    op.create_index("idx_points_ledger_user_created", "points_ledger", ["user_id", "created_at"])
    op.create_index("idx_points_ledger_booking", "points_ledger", ["booking_id"])

    op.create_table(
        "business_services",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_business_services_price_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_business_services"),
    )
    op.create_index(
        "idx_business_services_business_active",
        "business_services",
        ["business_id", "is_active"],
    )

    op.create_table(
        "loyalty_notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("booking_id", sa.String(64), nullable=True),
        sa.Column("outbox_event_id", sa.Uuid(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "kind IN ('ALMOST_UNLOCKED','REWARD_UNLOCKED')",
            name="ck_loyalty_notifications_kind",
        ),
        sa.ForeignKeyConstraint(
            ["program_id"],
            ["loyalty_programs.id"],
            name="fk_loyalty_notifications_program_id_loyalty_programs",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_loyalty_notifications"),
        sa.UniqueConstraint(
            "customer_id",
            "program_id",
            "kind",
            name="uq_loyalty_notifications_customer_program_kind",
        ),
    )

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('NEW','DISPATCHED','FAILED')", name="ck_outbox_events_status"),
        sa.PrimaryKeyConstraint("id", name="pk_outbox_events"),
    )
    op.create_index("idx_outbox_events_status_created", "outbox_events", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_outbox_events_status_created", table_name="outbox_events")
    op.drop_table("outbox_events")
    op.drop_table("loyalty_notifications")
    op.drop_index("idx_business_services_business_active", table_name="business_services")
    op.drop_table("business_services")
    op.drop_index("idx_points_ledger_booking", table_name="points_ledger")
    op.drop_index("idx_points_ledger_user_created", table_name="points_ledger")
    op.drop_table("points_ledger")
    op.drop_table("points_accounts")
    op.drop_index("uq_redemption_ledger_booking_live", table_name="redemption_ledger")
    op.drop_index("idx_redemption_ledger_user_status_created", table_name="redemption_ledger")
    op.drop_table("redemption_ledger")
    op.drop_index("idx_vouchers_open_expires", table_name="vouchers")
    op.drop_index("idx_vouchers_customer_program", table_name="vouchers")
    op.drop_table("vouchers")
    op.drop_index("idx_loyalty_bookings_customer_business", table_name="loyalty_bookings")
    op.drop_table("loyalty_bookings")
    op.drop_index("idx_customer_progress_program", table_name="customer_progress")
    op.drop_table("customer_progress")
    op.drop_index("uq_loyalty_programs_business_active", table_name="loyalty_programs")
    op.drop_index("idx_loyalty_programs_business", table_name="loyalty_programs")
    op.drop_table("loyalty_programs")
