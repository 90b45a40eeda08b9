from __future__ import annotations

import random
from datetime import datetime, timezone

import structlog
from celery import Task

from loyalty.core.config import get_settings
from loyalty.db.session import SessionLocal
from loyalty.rewards.bookings.service import BookingEventService
from loyalty.rewards.bookings.types import parse_booking_event
from loyalty.rewards.errors import LoyaltyError
from loyalty.workers.asyncio_runner import run_async_job
from loyalty.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
settings = get_settings()
TASK_MAX_RETRIES = max(0, int(settings.booking_event_task_max_retries))
TASK_RETRY_BACKOFF_MAX_SECONDS = max(1, int(settings.booking_event_task_retry_backoff_max_seconds))
RETRY_JITTER_RATIO = 0.25


def _retry_backoff_seconds(
    *,
    next_retry_attempt: int,
    backoff_max_seconds: int,
) -> int:
    safe_retry_attempt = max(1, int(next_retry_attempt))
    safe_backoff_max_seconds = max(1, int(backoff_max_seconds))

    base_delay = min(
        safe_backoff_max_seconds,
        2 ** (safe_retry_attempt - 1),
    )
    max_jitter = max(0, int(base_delay * RETRY_JITTER_RATIO))
    jitter = random.randint(0, max_jitter) if max_jitter > 0 else 0
    return min(safe_backoff_max_seconds, base_delay + jitter)


async def process_booking_event_async(
    payload: dict[str, object],
    *,
    now_utc: datetime | None = None,
) -> dict[str, object]:
    event = parse_booking_event(payload)
    resolved_now = now_utc or datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        result = await BookingEventService.handle_booking_event(
            session,
            event=event,
            now_utc=resolved_now,
        )

    summary: dict[str, object] = {
        "booking_id": result.booking_id,
        "event_type": result.event_type,
        "idempotent_replay": result.idempotent_replay,
        "newly_unlocked": result.newly_unlocked,
        "voucher_code_issued": result.voucher_code is not None,
        "notifications": len(result.notifications),
        "points_earned": result.points_earned.points if result.points_earned else 0,
        "redemption_status": result.redemption.status if result.redemption else None,
    }
    logger.info("booking_event_processed", **summary)
    return summary


@celery_app.task(
    name="loyalty.workers.tasks.booking_events.process_booking_event",
    bind=True,
    max_retries=TASK_MAX_RETRIES,
    acks_late=True,
    reject_on_worker_lost=True,
)
def process_booking_event(self: Task, payload: dict[str, object]) -> dict[str, object]:
    task_id = str(self.request.id) if self.request.id is not None else None
    try:
        return run_async_job(process_booking_event_async(payload))
    except LoyaltyError as exc:
        # business rejections are final, retrying cannot change the outcome
        logger.warning(
            "booking_event_rejected",
            booking_id=payload.get("booking_id"),
            task_id=task_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return {"booking_id": payload.get("booking_id"), "rejected": True, "error": str(exc)}
    except Exception as exc:
        current_retries = max(0, int(getattr(self.request, "retries", 0)))
        if current_retries >= TASK_MAX_RETRIES:
            logger.exception(
                "booking_event_failed_final",
                booking_id=payload.get("booking_id"),
                task_id=task_id,
                retries=current_retries,
                max_retries=TASK_MAX_RETRIES,
            )
            raise

        next_retry_attempt = current_retries + 1
        retry_in_seconds = _retry_backoff_seconds(
            next_retry_attempt=next_retry_attempt,
            backoff_max_seconds=TASK_RETRY_BACKOFF_MAX_SECONDS,
        )
        logger.warning(
            "booking_event_retry_scheduled",
            booking_id=payload.get("booking_id"),
            task_id=task_id,
            retry_attempt=next_retry_attempt,
            retry_in_seconds=retry_in_seconds,
        )
        raise self.retry(
            exc=exc,
            countdown=retry_in_seconds,
            max_retries=TASK_MAX_RETRIES,
        )
