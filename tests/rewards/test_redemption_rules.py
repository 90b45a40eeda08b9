from __future__ import annotations

from decimal import Decimal

import pytest

from loyalty.core.money import format_gbp, to_money
from loyalty.rewards.errors import (
    InsufficientBalanceError,
    LoyaltyValidationError,
    RedemptionCapExceededError,
)
from loyalty.rewards.redemptions.rules import (
    available_balance,
    cap_remaining,
    ensure_balance,
    ensure_within_cap,
    points_for_amount,
    points_to_gbp,
    validate_redemption_fairness,
)


def test_points_are_worth_one_penny() -> None:
    assert points_to_gbp(500) == Decimal("5.00")
    assert points_to_gbp(1) == Decimal("0.01")


def test_points_earned_per_whole_pound() -> None:
    assert points_for_amount(Decimal("45.99")) == 45
    assert points_for_amount(Decimal("0.99")) == 0
    assert points_for_amount(Decimal("0")) == 0


def test_fairness_requires_booking_twice_the_value() -> None:
    assert validate_redemption_fairness(points=500, booking_total=Decimal("10.00")) == Decimal("5.00")

    with pytest.raises(LoyaltyValidationError):
        validate_redemption_fairness(points=500, booking_total=Decimal("9.99"))


def test_fairness_rejects_non_positive_points() -> None:
    with pytest.raises(LoyaltyValidationError):
        validate_redemption_fairness(points=0, booking_total=Decimal("100.00"))


def test_cap_counts_deducted_and_pending_points() -> None:
    ensure_within_cap(deducted_in_window=4800, pending_points=0, requested=200)

    with pytest.raises(RedemptionCapExceededError) as exc_info:
        ensure_within_cap(deducted_in_window=4800, pending_points=0, requested=300)
    assert exc_info.value.remaining == 200

    with pytest.raises(RedemptionCapExceededError):
        ensure_within_cap(deducted_in_window=4700, pending_points=200, requested=150)


def test_balance_check_subtracts_pending_holds() -> None:
    assert available_balance(1000, 300) == 700
    ensure_balance(balance=1000, pending_points=300, requested=700)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        ensure_balance(balance=1000, pending_points=300, requested=701)
    assert exc_info.value.available == 700


def test_cap_remaining_never_negative() -> None:
    assert cap_remaining(deducted_in_window=4800, pending_points=100) == 100
    assert cap_remaining(deducted_in_window=5200, pending_points=0) == 0


def test_money_rejects_floats_and_rounds_half_up() -> None:
    assert to_money("10.005") == Decimal("10.01")
    assert format_gbp(Decimal("1234.5")) == "£1,234.50"
    with pytest.raises(TypeError):
        to_money(1.5)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        to_money("NaN")
