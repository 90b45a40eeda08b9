from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from loyalty.core.money import PENNY, ZERO, to_money
from loyalty.rewards.errors import LoyaltyValidationError, RewardNotAvailableError
from loyalty.rewards.evaluation.types import DiscountQuote
from loyalty.rewards.programs.rules import describe_reward
from loyalty.rewards.programs.types import ProgramSnapshot, ProgramType, RewardType
from loyalty.rewards.progress.types import ProgressSnapshot


def is_unlocked(program: ProgramSnapshot, progress: ProgressSnapshot | None) -> bool:
    if progress is None:
        return False
    if program.program_type == ProgramType.TIME_LIMITED and progress.window_expired:
        return False
    return progress.current >= program.threshold


def is_usable(*, unlocked: bool, redeemed: bool, opt_out: bool) -> bool:
    return unlocked and not redeemed and not opt_out


def compute_discount(
    program: ProgramSnapshot,
    *,
    booking_amount: Decimal,
    cheapest_service_price: Decimal | None = None,
) -> Decimal:
    """Discount in GBP for a booking of `booking_amount`.

    Never exceeds the booking amount, so the charge cannot go negative.
    """
    amount = to_money(booking_amount)
    if amount < 0:
        raise LoyaltyValidationError("booking amount cannot be negative")

    if program.reward_type == RewardType.FREE_SERVICE:
        if cheapest_service_price is None:
            raise RewardNotAvailableError("business has no active services for a free service reward")
        return min(to_money(cheapest_service_price), amount)

    if program.reward_type == RewardType.FIXED_DISCOUNT:
        return min(to_money(program.reward_value), amount)

    discount = (amount * program.reward_value / Decimal("100")).quantize(
        PENNY,
        rounding=ROUND_HALF_UP,
    )
    return max(ZERO, min(discount, amount))


def build_quote(
    program: ProgramSnapshot,
    *,
    booking_amount: Decimal,
    cheapest_service_price: Decimal | None = None,
    cheapest_service_name: str | None = None,
) -> DiscountQuote:
    discount = compute_discount(
        program,
        booking_amount=booking_amount,
        cheapest_service_price=cheapest_service_price,
    )
    if program.reward_type == RewardType.FREE_SERVICE and cheapest_service_name:
        description = f"Free {cheapest_service_name}"
    else:
        description = describe_reward(program.reward_type, program.reward_value)
    return DiscountQuote(
        program_id=program.id,
        reward_type=program.reward_type,
        booking_amount=to_money(booking_amount),
        discount=discount,
        description=description,
    )
