from loyalty.workers.tasks.booking_events import process_booking_event
from loyalty.workers.tasks.loyalty_maintenance import (
    run_reward_expiring_notifications,
    run_voucher_expiry,
)

__all__ = [
    "process_booking_event",
    "run_reward_expiring_notifications",
    "run_voucher_expiry",
]
