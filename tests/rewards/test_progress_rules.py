from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from loyalty.rewards.programs.types import ProgramSnapshot, ProgramType, RewardType
from loyalty.rewards.progress.rules import (
    calculate_progress,
    days_remaining,
    next_window_start,
    progress_percentage,
)
from loyalty.rewards.progress.types import BookingSnapshot

UTC = timezone.utc
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def program(
    program_type: ProgramType,
    *,
    threshold: str,
    time_limit_days: int | None = None,
    is_active: bool = True,
) -> ProgramSnapshot:
    return ProgramSnapshot(
        id=uuid4(),
        business_id=10,
        program_type=program_type,
        threshold=Decimal(threshold),
        reward_type=RewardType.FIXED_DISCOUNT,
        reward_value=Decimal("5.00"),
        is_active=is_active,
        time_limit_days=time_limit_days,
    )


def booking(index: int, *, amount: str = "25.00", at: datetime | None = None) -> BookingSnapshot:
    return BookingSnapshot(
        booking_id=f"bk-{index}",
        total_amount=Decimal(amount),
        completed_at=at or NOW - timedelta(days=10 - index),
    )


def test_visit_based_counts_bookings() -> None:
    snapshot = calculate_progress(
        program(ProgramType.VISIT_BASED, threshold="5"),
        [booking(1), booking(2), booking(3)],
        now_utc=NOW,
    )

    assert snapshot is not None
    assert snapshot.current == Decimal("3")
    assert snapshot.percentage == Decimal("60.00")
    assert snapshot.remaining == Decimal("2")


def test_spend_based_sums_totals_and_caps_at_hundred() -> None:
    spend_program = program(ProgramType.SPEND_BASED, threshold="100.00")

    partial = calculate_progress(spend_program, [booking(1, amount="40.00")], now_utc=NOW)
    full = calculate_progress(
        spend_program,
        [booking(1, amount="80.00"), booking(2, amount="45.50")],
        now_utc=NOW,
    )

    assert partial is not None and partial.percentage == Decimal("40.00")
    assert full is not None
    assert full.current == Decimal("125.50")
    assert full.percentage == Decimal("100.00")
    assert full.remaining == Decimal("0")


def test_percentage_is_truncated_not_rounded_up() -> None:
    assert progress_percentage(Decimal("2"), Decimal("3")) == Decimal("66.66")
    assert progress_percentage(Decimal("99.999"), Decimal("100")) == Decimal("99.99")


def test_percentage_never_regresses_as_bookings_are_added() -> None:
    visit_program = program(ProgramType.VISIT_BASED, threshold="7")
    history: list[BookingSnapshot] = []
    previous = Decimal("0")
    for index in range(1, 10):
        history.append(booking(index))
        snapshot = calculate_progress(visit_program, history, now_utc=NOW)
        assert snapshot is not None
        assert snapshot.percentage >= previous
        previous = snapshot.percentage
    assert previous == Decimal("100.00")


def test_missing_or_inactive_program_returns_none() -> None:
    assert calculate_progress(None, [booking(1)], now_utc=NOW) is None
    inactive = program(ProgramType.VISIT_BASED, threshold="3", is_active=False)
    assert calculate_progress(inactive, [booking(1)], now_utc=NOW) is None


def test_time_limited_counts_only_bookings_inside_window() -> None:
    window_start = NOW - timedelta(days=20)
    limited = program(ProgramType.TIME_LIMITED, threshold="3", time_limit_days=14)
    bookings = [
        booking(1, at=window_start),
        booking(2, at=window_start + timedelta(days=5)),
        booking(3, at=window_start + timedelta(days=15)),
    ]

    snapshot = calculate_progress(
        limited,
        bookings,
        now_utc=NOW,
        window_started_at=window_start,
    )

    assert snapshot is not None
    assert snapshot.qualifying_bookings == 2
    assert snapshot.window_expired is True
    assert snapshot.days_remaining == 0


def test_time_limited_window_defaults_to_first_booking() -> None:
    first_at = NOW - timedelta(days=3)
    limited = program(ProgramType.TIME_LIMITED, threshold="4", time_limit_days=30)

    snapshot = calculate_progress(
        limited,
        [booking(2, at=NOW - timedelta(days=1)), booking(1, at=first_at)],
        now_utc=NOW,
    )

    assert snapshot is not None
    assert snapshot.window_started_at == first_at
    assert snapshot.days_remaining == 27
    assert snapshot.window_expired is False
    assert snapshot.percentage == Decimal("50.00")


def test_days_remaining_without_window_is_full_limit() -> None:
    assert days_remaining(None, 30, now_utc=NOW) == 30
    assert days_remaining(NOW - timedelta(days=45), 30, now_utc=NOW) == 0


def test_next_window_start_restarts_elapsed_time_limited_window() -> None:
    limited = program(ProgramType.TIME_LIMITED, threshold="3", time_limit_days=7)
    started = NOW - timedelta(days=10)

    restarted = next_window_start(
        limited,
        window_started_at=started,
        reward_unlocked=False,
        booking_completed_at=NOW,
    )
    kept = next_window_start(
        limited,
        window_started_at=started,
        reward_unlocked=False,
        booking_completed_at=started + timedelta(days=6),
    )

    assert restarted == NOW
    assert kept == started


def test_next_window_start_keeps_first_visit_for_other_programs() -> None:
    started = NOW - timedelta(days=400)
    visit_program = program(ProgramType.VISIT_BASED, threshold="5")

    assert (
        next_window_start(
            visit_program,
            window_started_at=started,
            reward_unlocked=False,
            booking_completed_at=NOW,
        )
        == started
    )
    assert (
        next_window_start(
            visit_program,
            window_started_at=None,
            reward_unlocked=False,
            booking_completed_at=NOW,
        )
        == NOW
    )


def test_next_window_start_moves_back_for_late_earlier_booking() -> None:
    started = NOW - timedelta(hours=1)
    earlier = NOW - timedelta(hours=2)

    assert (
        next_window_start(
            program(ProgramType.SPEND_BASED, threshold="100"),
            window_started_at=started,
            reward_unlocked=False,
            booking_completed_at=earlier,
        )
        == earlier
    )
    assert (
        next_window_start(
            program(ProgramType.TIME_LIMITED, threshold="3", time_limit_days=7),
            window_started_at=started,
            reward_unlocked=False,
            booking_completed_at=earlier,
        )
        == started
    )
