from __future__ import annotations

from datetime import datetime, timezone

import structlog

from loyalty.db.session import SessionLocal
from loyalty.rewards.notifications.service import NotificationService
from loyalty.rewards.vouchers.constants import VOUCHER_MAINTENANCE_BATCH_SIZE
from loyalty.rewards.vouchers.service import VoucherService
from loyalty.workers.asyncio_runner import run_async_job
from loyalty.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_voucher_expiry_async(
    *,
    batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE,
    now_utc: datetime | None = None,
) -> dict[str, int]:
    resolved_now = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        expired_count = await VoucherService.expire_overdue(
            session,
            now_utc=resolved_now,
            batch_size=batch_size,
        )

    result = {"expired_vouchers": expired_count}
    logger.info("voucher_expiry_finished", **result)
    return result


async def run_reward_expiring_notifications_async(
    *,
    batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE,
    now_utc: datetime | None = None,
) -> dict[str, int]:
    resolved_now = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        notified_count = await NotificationService.enqueue_reward_expiring(
            session,
            now_utc=resolved_now,
            batch_size=batch_size,
        )

    result = {"expiring_notices": notified_count}
    logger.info("reward_expiring_notifications_finished", **result)
    return result


@celery_app.task(name="loyalty.workers.tasks.loyalty_maintenance.run_voucher_expiry")
def run_voucher_expiry(batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE) -> dict[str, int]:
    return run_async_job(run_voucher_expiry_async(batch_size=batch_size))


@celery_app.task(name="loyalty.workers.tasks.loyalty_maintenance.run_reward_expiring_notifications")
def run_reward_expiring_notifications(
    batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE,
) -> dict[str, int]:
    return run_async_job(run_reward_expiring_notifications_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "loyalty-voucher-expiry-every-10-minutes": {
            "task": "loyalty.workers.tasks.loyalty_maintenance.run_voucher_expiry",
            "schedule": 600.0,
            "options": {"queue": "q_normal"},
        },
        "loyalty-reward-expiring-notifications-hourly": {
            "task": "loyalty.workers.tasks.loyalty_maintenance.run_reward_expiring_notifications",
            "schedule": 3600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
