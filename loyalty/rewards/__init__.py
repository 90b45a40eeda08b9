from loyalty.rewards.bookings.service import BookingEventService
from loyalty.rewards.evaluation.service import RewardService
from loyalty.rewards.notifications.service import NotificationService
from loyalty.rewards.privacy.service import PrivacyService
from loyalty.rewards.programs.service import ProgramService
from loyalty.rewards.progress.service import ProgressService
from loyalty.rewards.redemptions.service import RedemptionService
from loyalty.rewards.vouchers.service import VoucherService

__all__ = [
    "BookingEventService",
    "NotificationService",
    "PrivacyService",
    "ProgramService",
    "ProgressService",
    "RedemptionService",
    "RewardService",
    "VoucherService",
]
