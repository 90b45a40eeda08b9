from __future__ import annotations

from decimal import Decimal

import pytest

from loyalty.rewards.errors import LoyaltyValidationError
from loyalty.rewards.programs.rules import describe_reward, validate_program_config
from loyalty.rewards.programs.types import ProgramType, RewardType


def test_valid_visit_program() -> None:
    config = validate_program_config(
        program_type="visit_based",
        threshold=5,
        reward_type="free_service",
        reward_value="1",
    )

    assert config.program_type == ProgramType.VISIT_BASED
    assert config.threshold == Decimal("5.00")
    assert config.reward_type == RewardType.FREE_SERVICE
    assert config.time_limit_days is None


def test_time_limited_program_requires_time_limit() -> None:
    with pytest.raises(LoyaltyValidationError, match="time_limit_days"):
        validate_program_config(
            program_type="time_limited",
            threshold=3,
            reward_type="fixed_discount",
            reward_value="10",
        )

    config = validate_program_config(
        program_type="time_limited",
        threshold=3,
        reward_type="fixed_discount",
        reward_value="10",
        time_limit_days=30,
    )
    assert config.time_limit_days == 30


def test_time_limit_is_rejected_for_other_program_types() -> None:
    with pytest.raises(LoyaltyValidationError, match="time_limit_days"):
        validate_program_config(
            program_type="spend_based",
            threshold="150.00",
            reward_type="fixed_discount",
            reward_value="15",
            time_limit_days=30,
        )


@pytest.mark.parametrize(
    "overrides",
    [
        {"program_type": "points_based"},
        {"reward_type": "cashback"},
        {"threshold": None},
        {"threshold": 0},
        {"threshold": "2.5"},
        {"reward_value": "0"},
        {"reward_value": 12.5},
        {"reward_type": "percentage_discount", "reward_value": "101"},
        {"almost_unlocked_percent": 100},
        {"almost_unlocked_percent": True},
    ],
)
def test_invalid_program_config_is_rejected(overrides: dict[str, object]) -> None:
    params: dict[str, object] = {
        "program_type": "visit_based",
        "threshold": 5,
        "reward_type": "fixed_discount",
        "reward_value": "10",
    }
    params.update(overrides)

    with pytest.raises(LoyaltyValidationError):
        validate_program_config(**params)


def test_spend_threshold_accepts_fractional_amount() -> None:
    config = validate_program_config(
        program_type="spend_based",
        threshold="99.50",
        reward_type="percentage_discount",
        reward_value="100",
        almost_unlocked_percent=75,
    )

    assert config.threshold == Decimal("99.50")
    assert config.almost_unlocked_percent == 75


def test_describe_reward() -> None:
    assert describe_reward(RewardType.FREE_SERVICE, Decimal("1")) == "1 Free Service"
    assert describe_reward(RewardType.FIXED_DISCOUNT, Decimal("5")) == "£5.00 off your next booking"
    assert describe_reward(RewardType.PERCENTAGE_DISCOUNT, Decimal("12.50")) == "12.5% off your next booking"
