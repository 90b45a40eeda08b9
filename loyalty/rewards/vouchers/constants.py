from datetime import timedelta

VOUCHER_CODE_PREFIX = "BP"
VOUCHER_RANDOM_BYTES = 8
VOUCHER_CODE_MAX_ATTEMPTS = 5
VOUCHER_TTL = timedelta(days=90)
VOUCHER_EXPIRING_LEAD_TIME = timedelta(days=3)
VOUCHER_MAINTENANCE_BATCH_SIZE = 500
