from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(slots=True)
class RedemptionResult:
    entry_id: UUID
    user_id: int
    booking_id: str
    points: int
    value_gbp: Decimal
    status: str
    idempotent_replay: bool
    balance: int
    available_balance: int


@dataclass(slots=True)
class RedemptionSummary:
    user_id: int
    balance: int
    pending_points: int
    available_balance: int
    redeemed_in_window: int
    cap: int
    cap_remaining: int
    window_started_at: datetime
    balance_gbp: Decimal


@dataclass(slots=True)
class PointsEarnResult:
    user_id: int
    booking_id: str
    points: int
    balance: int
    idempotent_replay: bool
