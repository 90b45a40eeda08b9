DEFAULT_ALMOST_UNLOCKED_SPEND_PERCENT = 80
URGENCY_DAYS_REMAINING = 7

NOTIFICATION_KIND_ALMOST_UNLOCKED = "ALMOST_UNLOCKED"
NOTIFICATION_KIND_REWARD_UNLOCKED = "REWARD_UNLOCKED"

TEMPLATE_ALMOST_UNLOCKED = "loyalty_almost_unlocked"
TEMPLATE_REWARD_UNLOCKED = "loyalty_reward_unlocked"
TEMPLATE_REWARD_EXPIRING = "loyalty_reward_expiring"

OUTBOX_EVENT_ALMOST_UNLOCKED = "loyalty_almost_unlocked"
OUTBOX_EVENT_REWARD_UNLOCKED = "loyalty_reward_unlocked"
OUTBOX_EVENT_REWARD_EXPIRING = "loyalty_reward_expiring"
OUTBOX_STATUS_NEW = "NEW"
