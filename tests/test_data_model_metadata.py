from __future__ import annotations

from sqlalchemy import CheckConstraint, UniqueConstraint

from loyalty.db.models import (  # noqa: F401
    BusinessService,
    CustomerProgress,
    LoyaltyBooking,
    LoyaltyNotification,
    LoyaltyProgram,
    OutboxEvent,
    PointsAccount,
    PointsLedgerEntry,
    RedemptionLedgerEntry,
    Voucher,
)
from loyalty.db.models.base import Base


def _check_names(table_name: str) -> set[str]:
    return {
        constraint.name
        for constraint in Base.metadata.tables[table_name].constraints
        if isinstance(constraint, CheckConstraint)
    }


def _unique_names(table_name: str) -> set[str]:
    return {
        constraint.name
        for constraint in Base.metadata.tables[table_name].constraints
        if isinstance(constraint, UniqueConstraint)
    }


def _index_names(table_name: str) -> set[str]:
    return {index.name for index in Base.metadata.tables[table_name].indexes}


def test_all_loyalty_tables_registered() -> None:
    assert set(Base.metadata.tables) == {
        "loyalty_programs",
        "customer_progress",
        "loyalty_bookings",
        "vouchers",
        "redemption_ledger",
        "points_accounts",
        "points_ledger",
        "business_services",
        "loyalty_notifications",
        "outbox_events",
    }


def test_one_active_program_per_business() -> None:
    index = next(
        index
        for index in Base.metadata.tables["loyalty_programs"].indexes
        if index.name == "uq_loyalty_programs_business_active"
    )
    assert index.unique is True
    assert "ck_loyalty_programs_percentage_max" in _check_names("loyalty_programs")
    assert "ck_loyalty_programs_time_limit_required" in _check_names("loyalty_programs")


def test_progress_unique_per_customer_and_business() -> None:
    assert "uq_customer_progress_customer_business" in _unique_names("customer_progress")
    assert "ck_customer_progress_redeemed_requires_unlocked" in _check_names("customer_progress")


def test_redemption_ledger_allows_one_live_entry_per_booking() -> None:
    index = next(
        index
        for index in Base.metadata.tables["redemption_ledger"].indexes
        if index.name == "uq_redemption_ledger_booking_live"
    )
    assert index.unique is True
    assert "ck_redemption_ledger_status" in _check_names("redemption_ledger")


def test_idempotency_constraints_present() -> None:
    tables = Base.metadata.tables
    assert tables["loyalty_bookings"].c.booking_id.unique is True
    assert tables["points_ledger"].c.idempotency_key.unique is True
    assert tables["vouchers"].c.code.unique is True
    assert "uq_loyalty_notifications_customer_program_kind" in _unique_names("loyalty_notifications")
    assert "ck_points_accounts_balance_non_negative" in _check_names("points_accounts")
    assert "idx_outbox_events_status_created" in _index_names("outbox_events")
