from datetime import timedelta
from decimal import Decimal

POINT_VALUE_GBP = Decimal("0.01")
POINTS_PER_GBP = 1
REDEMPTION_CAP_POINTS = 5000
REDEMPTION_CAP_WINDOW = timedelta(days=30)
MIN_BOOKING_TO_REDEMPTION_RATIO = 2
MAX_REDEMPTION_SHARE_OF_BOOKING = Decimal("0.5")

REDEMPTION_STATUS_PENDING = "pending"
REDEMPTION_STATUS_DEDUCTED = "deducted"
REDEMPTION_STATUS_RELEASED = "released"
