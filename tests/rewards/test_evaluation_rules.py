from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from loyalty.rewards.errors import LoyaltyValidationError, RewardNotAvailableError
from loyalty.rewards.evaluation.rules import build_quote, compute_discount, is_unlocked, is_usable
from loyalty.rewards.programs.types import ProgramSnapshot, ProgramType, RewardType
from loyalty.rewards.progress.types import ProgressSnapshot

UTC = timezone.utc


def program(
    reward_type: RewardType,
    reward_value: str,
    *,
    program_type: ProgramType = ProgramType.VISIT_BASED,
    threshold: str = "5",
) -> ProgramSnapshot:
    return ProgramSnapshot(
        id=uuid4(),
        business_id=10,
        program_type=program_type,
        threshold=Decimal(threshold),
        reward_type=reward_type,
        reward_value=Decimal(reward_value),
        time_limit_days=14 if program_type == ProgramType.TIME_LIMITED else None,
    )


def progress(snapshot_program: ProgramSnapshot, current: str, *, window_expired: bool = False) -> ProgressSnapshot:
    return ProgressSnapshot(
        program_id=snapshot_program.id,
        program_type=snapshot_program.program_type,
        current=Decimal(current),
        target=snapshot_program.threshold,
        percentage=Decimal("0"),
        qualifying_bookings=int(Decimal(current)),
        window_started_at=datetime(2026, 3, 1, tzinfo=UTC),
        window_expired=window_expired,
    )


def test_percentage_discount_twenty_percent_of_fifty() -> None:
    percent_program = program(RewardType.PERCENTAGE_DISCOUNT, "20")

    assert compute_discount(percent_program, booking_amount=Decimal("50.00")) == Decimal("10.00")


def test_percentage_discount_rounds_half_up_to_pennies() -> None:
    percent_program = program(RewardType.PERCENTAGE_DISCOUNT, "15")

    # 15% of 10.10 is 1.515
    assert compute_discount(percent_program, booking_amount=Decimal("10.10")) == Decimal("1.52")


def test_fixed_discount_is_capped_at_booking_amount() -> None:
    fixed_program = program(RewardType.FIXED_DISCOUNT, "25.00")

    assert compute_discount(fixed_program, booking_amount=Decimal("60.00")) == Decimal("25.00")
    assert compute_discount(fixed_program, booking_amount=Decimal("18.40")) == Decimal("18.40")


def test_free_service_uses_cheapest_service_price() -> None:
    free_program = program(RewardType.FREE_SERVICE, "1")

    assert (
        compute_discount(
            free_program,
            booking_amount=Decimal("80.00"),
            cheapest_service_price=Decimal("22.50"),
        )
        == Decimal("22.50")
    )
    assert (
        compute_discount(
            free_program,
            booking_amount=Decimal("15.00"),
            cheapest_service_price=Decimal("22.50"),
        )
        == Decimal("15.00")
    )


def test_free_service_without_catalogue_is_not_available() -> None:
    with pytest.raises(RewardNotAvailableError):
        compute_discount(program(RewardType.FREE_SERVICE, "1"), booking_amount=Decimal("30.00"))


def test_negative_booking_amount_is_rejected() -> None:
    with pytest.raises(LoyaltyValidationError):
        compute_discount(program(RewardType.FIXED_DISCOUNT, "5"), booking_amount=Decimal("-1"))


def test_quote_description_names_free_service() -> None:
    free_program = program(RewardType.FREE_SERVICE, "1")

    quote = build_quote(
        free_program,
        booking_amount=Decimal("40"),
        cheapest_service_price=Decimal("12.00"),
        cheapest_service_name="Fringe Trim",
    )

    assert quote.description == "Free Fringe Trim"
    assert quote.discount == Decimal("12.00")
    assert quote.amount_due == Decimal("28.00")


def test_quote_description_for_percentage_reward() -> None:
    quote = build_quote(program(RewardType.PERCENTAGE_DISCOUNT, "20.00"), booking_amount=Decimal("50"))

    assert quote.description == "20% off your next booking"


def test_is_unlocked_at_threshold() -> None:
    visit_program = program(RewardType.FIXED_DISCOUNT, "5")

    assert is_unlocked(visit_program, progress(visit_program, "4")) is False
    assert is_unlocked(visit_program, progress(visit_program, "5")) is True
    assert is_unlocked(visit_program, None) is False


def test_time_limited_unlock_requires_open_window() -> None:
    limited = program(RewardType.FIXED_DISCOUNT, "5", program_type=ProgramType.TIME_LIMITED, threshold="3")

    assert is_unlocked(limited, progress(limited, "3")) is True
    assert is_unlocked(limited, progress(limited, "3", window_expired=True)) is False


def test_is_usable_truth_table() -> None:
    assert is_usable(unlocked=True, redeemed=False, opt_out=False) is True
    assert is_usable(unlocked=True, redeemed=True, opt_out=False) is False
    assert is_usable(unlocked=True, redeemed=False, opt_out=True) is False
    assert is_usable(unlocked=False, redeemed=False, opt_out=False) is False
