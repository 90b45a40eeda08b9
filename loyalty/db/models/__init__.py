from loyalty.db.models.business_services import BusinessService
from loyalty.db.models.customer_progress import CustomerProgress
from loyalty.db.models.loyalty_bookings import LoyaltyBooking
from loyalty.db.models.loyalty_notifications import LoyaltyNotification
from loyalty.db.models.loyalty_programs import LoyaltyProgram
from loyalty.db.models.outbox_events import OutboxEvent
from loyalty.db.models.points_accounts import PointsAccount
from loyalty.db.models.points_ledger import PointsLedgerEntry
from loyalty.db.models.redemption_ledger import RedemptionLedgerEntry
from loyalty.db.models.vouchers import Voucher

__all__ = [
    "BusinessService",
    "CustomerProgress",
    "LoyaltyBooking",
    "LoyaltyNotification",
    "LoyaltyProgram",
    "OutboxEvent",
    "PointsAccount",
    "PointsLedgerEntry",
    "RedemptionLedgerEntry",
    "Voucher",
]
