from __future__ import annotations

from decimal import Decimal, InvalidOperation

from loyalty.core.money import to_money
from loyalty.rewards.errors import LoyaltyValidationError
from loyalty.rewards.programs.types import ProgramConfig, ProgramType, RewardType


def _parse_enum(enum_cls, raw_value: object, *, field: str):
    try:
        return enum_cls(raw_value)
    except ValueError as exc:
        raise LoyaltyValidationError(f"invalid {field}: {raw_value!r}") from exc


def _parse_decimal(raw_value: object, *, field: str) -> Decimal:
    if raw_value is None or isinstance(raw_value, (bool, float)):
        raise LoyaltyValidationError(f"{field} is required")
    try:
        return to_money(raw_value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise LoyaltyValidationError(f"invalid {field}: {raw_value!r}") from exc


def validate_program_config(
    *,
    program_type: object,
    threshold: object,
    reward_type: object,
    reward_value: object,
    time_limit_days: object = None,
    almost_unlocked_percent: object = None,
) -> ProgramConfig:
    """Validates a business-supplied loyalty program configuration.

    Visit-style programs count bookings, so their threshold must be a whole
    number of at least one. Spend programs accept any positive amount.
    """
    resolved_type = _parse_enum(ProgramType, program_type, field="program_type")
    resolved_reward_type = _parse_enum(RewardType, reward_type, field="reward_type")

    resolved_threshold = _parse_decimal(threshold, field="threshold")
    if resolved_type == ProgramType.SPEND_BASED:
        if resolved_threshold <= 0:
            raise LoyaltyValidationError("threshold must be greater than 0")
    else:
        if resolved_threshold < 1:
            raise LoyaltyValidationError("threshold must be at least 1")
        if resolved_threshold != resolved_threshold.to_integral_value():
            raise LoyaltyValidationError("visit threshold must be a whole number")

    resolved_time_limit: int | None = None
    if resolved_type == ProgramType.TIME_LIMITED:
        if not isinstance(time_limit_days, int) or isinstance(time_limit_days, bool):
            raise LoyaltyValidationError("time_limit_days is required for time-limited programs")
        if time_limit_days < 1:
            raise LoyaltyValidationError("time_limit_days must be at least 1")
        resolved_time_limit = time_limit_days
    elif time_limit_days is not None:
        raise LoyaltyValidationError("time_limit_days only applies to time-limited programs")

    resolved_reward_value = _parse_decimal(reward_value, field="reward_value")
    if resolved_reward_value <= 0:
        raise LoyaltyValidationError("reward_value must be greater than 0")
    if resolved_reward_type == RewardType.PERCENTAGE_DISCOUNT and resolved_reward_value > 100:
        raise LoyaltyValidationError("percentage discount cannot exceed 100")

    resolved_almost_percent: int | None = None
    if almost_unlocked_percent is not None:
        if not isinstance(almost_unlocked_percent, int) or isinstance(almost_unlocked_percent, bool):
            raise LoyaltyValidationError("almost_unlocked_percent must be an integer")
        if not 1 <= almost_unlocked_percent <= 99:
            raise LoyaltyValidationError("almost_unlocked_percent must be between 1 and 99")
        resolved_almost_percent = almost_unlocked_percent

    return ProgramConfig(
        program_type=resolved_type,
        threshold=resolved_threshold,
        reward_type=resolved_reward_type,
        reward_value=resolved_reward_value,
        time_limit_days=resolved_time_limit,
        almost_unlocked_percent=resolved_almost_percent,
    )


def describe_reward(reward_type: RewardType, reward_value: Decimal) -> str:
    if reward_type == RewardType.FREE_SERVICE:
        return "1 Free Service"
    if reward_type == RewardType.FIXED_DISCOUNT:
        return f"£{to_money(reward_value)} off your next booking"
    percent = reward_value.normalize()
    return f"{percent:f}% off your next booking"
