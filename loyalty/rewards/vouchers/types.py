from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from loyalty.rewards.programs.types import RewardType


class VoucherStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class VoucherView:
    id: UUID
    code: str
    customer_id: int
    business_id: int
    program_id: UUID
    reward_type: RewardType
    reward_value: Decimal
    status: VoucherStatus
    expires_at: datetime
    created_at: datetime
    used_at: datetime | None = None
    used_booking_id: str | None = None


@dataclass(slots=True)
class VoucherIssueResult:
    voucher: VoucherView
    created: bool


@dataclass(slots=True)
class VoucherMaintenanceResult:
    expired_total: int
    notified_total: int = 0
