from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class OptOutResult:
    customer_id: int
    business_id: int
    opt_out: bool
    changed: bool
    vouchers_expired: int
    notifications_deleted: int
    updated_at: datetime
