from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ProgramType(str, Enum):
    VISIT_BASED = "visit_based"
    SPEND_BASED = "spend_based"
    TIME_LIMITED = "time_limited"


class RewardType(str, Enum):
    FREE_SERVICE = "free_service"
    FIXED_DISCOUNT = "fixed_discount"
    PERCENTAGE_DISCOUNT = "percentage_discount"


@dataclass(frozen=True, slots=True)
class ProgramSnapshot:
    id: UUID
    business_id: int
    program_type: ProgramType
    threshold: Decimal
    reward_type: RewardType
    reward_value: Decimal
    is_active: bool = True
    time_limit_days: int | None = None
    almost_unlocked_percent: int | None = None


@dataclass(frozen=True, slots=True)
class ProgramConfig:
    program_type: ProgramType
    threshold: Decimal
    reward_type: RewardType
    reward_value: Decimal
    time_limit_days: int | None = None
    almost_unlocked_percent: int | None = None


@dataclass(slots=True)
class ProgramConfigureResult:
    program: ProgramSnapshot
    replaced_program_id: UUID | None
    created_at: datetime
