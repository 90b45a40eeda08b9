from loyalty.db.repo.business_services_repo import BusinessServicesRepo
from loyalty.db.repo.customer_progress_repo import CustomerProgressRepo
from loyalty.db.repo.loyalty_bookings_repo import LoyaltyBookingsRepo
from loyalty.db.repo.loyalty_notifications_repo import LoyaltyNotificationsRepo
from loyalty.db.repo.loyalty_programs_repo import LoyaltyProgramsRepo
from loyalty.db.repo.outbox_events_repo import OutboxEventsRepo
from loyalty.db.repo.points_accounts_repo import PointsAccountsRepo
from loyalty.db.repo.points_ledger_repo import PointsLedgerRepo
from loyalty.db.repo.redemption_ledger_repo import RedemptionLedgerRepo
from loyalty.db.repo.vouchers_repo import VouchersRepo

__all__ = [
    "BusinessServicesRepo",
    "CustomerProgressRepo",
    "LoyaltyBookingsRepo",
    "LoyaltyNotificationsRepo",
    "LoyaltyProgramsRepo",
    "OutboxEventsRepo",
    "PointsAccountsRepo",
    "PointsLedgerRepo",
    "RedemptionLedgerRepo",
    "VouchersRepo",
]
