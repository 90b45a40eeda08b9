from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from loyalty.rewards.programs.types import RewardType
from loyalty.rewards.progress.types import ProgressSnapshot


@dataclass(frozen=True, slots=True)
class DiscountQuote:
    program_id: UUID
    reward_type: RewardType
    booking_amount: Decimal
    discount: Decimal
    description: str

    @property
    def amount_due(self) -> Decimal:
        return self.booking_amount - self.discount


@dataclass(slots=True)
class RewardStatus:
    customer_id: int
    business_id: int
    progress: ProgressSnapshot | None
    reward_unlocked: bool
    reward_redeemed: bool
    opt_out: bool
    voucher_code: str | None = None
    voucher_expires_at: datetime | None = None

    @property
    def reward_usable(self) -> bool:
        return self.reward_unlocked and not self.reward_redeemed and not self.opt_out


@dataclass(slots=True)
class ApplyRewardResult:
    quote: DiscountQuote
    booking_id: str
    voucher_id: UUID | None
    redeemed_at: datetime
