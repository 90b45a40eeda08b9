from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from loyalty.rewards.programs.types import ProgramType


@dataclass(frozen=True, slots=True)
class BookingSnapshot:
    booking_id: str
    total_amount: Decimal
    completed_at: datetime


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    program_id: UUID
    program_type: ProgramType
    current: Decimal
    target: Decimal
    percentage: Decimal
    qualifying_bookings: int
    window_started_at: datetime | None = None
    days_remaining: int | None = None
    window_expired: bool = False

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.target - self.current)


@dataclass(slots=True)
class CustomerProgressView:
    customer_id: int
    business_id: int
    progress: ProgressSnapshot
    reward_unlocked: bool
    reward_redeemed: bool
    opt_out: bool

    @property
    def reward_usable(self) -> bool:
        return self.reward_unlocked and not self.reward_redeemed and not self.opt_out


@dataclass(slots=True)
class ProgressUpdate:
    customer_id: int
    business_id: int
    progress: ProgressSnapshot | None
    was_unlocked: bool
    now_unlocked: bool
    opt_out: bool
    window_restarted: bool = False

    @property
    def newly_unlocked(self) -> bool:
        return self.now_unlocked and not self.was_unlocked
