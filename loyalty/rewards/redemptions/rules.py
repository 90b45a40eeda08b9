from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

from loyalty.core.money import to_money
from loyalty.rewards.errors import (
    InsufficientBalanceError,
    LoyaltyValidationError,
    RedemptionCapExceededError,
)
from loyalty.rewards.redemptions.constants import (
    MAX_REDEMPTION_SHARE_OF_BOOKING,
    MIN_BOOKING_TO_REDEMPTION_RATIO,
    POINT_VALUE_GBP,
    POINTS_PER_GBP,
    REDEMPTION_CAP_POINTS,
)


def points_to_gbp(points: int) -> Decimal:
    return to_money(Decimal(points) * POINT_VALUE_GBP)


def points_for_amount(amount_gbp: Decimal) -> int:
    """Points earned for a spend: POINTS_PER_GBP per whole pound."""
    if amount_gbp <= 0:
        return 0
    whole_pounds = amount_gbp.to_integral_value(rounding=ROUND_FLOOR)
    return int(whole_pounds) * POINTS_PER_GBP


def available_balance(balance: int, pending_points: int) -> int:
    return max(0, balance - pending_points)


def validate_redemption_fairness(*, points: int, booking_total: Decimal) -> Decimal:
    """Checks the business fairness rules and returns the redemption value."""
    if points <= 0:
        raise LoyaltyValidationError("points must be positive")

    total = to_money(booking_total)
    value = points_to_gbp(points)
    if total < value * MIN_BOOKING_TO_REDEMPTION_RATIO:
        raise LoyaltyValidationError(
            f"booking total must be at least £{value * MIN_BOOKING_TO_REDEMPTION_RATIO} "
            f"to redeem £{value}"
        )
    if value > total * MAX_REDEMPTION_SHARE_OF_BOOKING:
        raise LoyaltyValidationError("redemption cannot exceed 50% of the booking total")
    return value


def ensure_balance(*, balance: int, pending_points: int, requested: int) -> None:
    available = available_balance(balance, pending_points)
    if requested > available:
        raise InsufficientBalanceError(available=available, requested=requested)


def ensure_within_cap(
    *,
    deducted_in_window: int,
    pending_points: int,
    requested: int,
    cap: int = REDEMPTION_CAP_POINTS,
) -> None:
    """Pending reservations count against the cap so they cannot overshoot it on commit."""
    committed_or_held = deducted_in_window + pending_points
    if committed_or_held + requested > cap:
        raise RedemptionCapExceededError(
            redeemed_in_window=committed_or_held,
            requested=requested,
            cap=cap,
        )


def cap_remaining(*, deducted_in_window: int, pending_points: int, cap: int = REDEMPTION_CAP_POINTS) -> int:
    return max(0, cap - deducted_in_window - pending_points)
