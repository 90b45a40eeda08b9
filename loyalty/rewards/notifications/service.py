from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.core.config import get_settings
from loyalty.db.models.loyalty_notifications import LoyaltyNotification
from loyalty.db.repo.loyalty_notifications_repo import LoyaltyNotificationsRepo
from loyalty.db.repo.outbox_events_repo import OutboxEventsRepo
from loyalty.db.repo.vouchers_repo import VouchersRepo
from loyalty.rewards.notifications.constants import (
    NOTIFICATION_KIND_ALMOST_UNLOCKED,
    NOTIFICATION_KIND_REWARD_UNLOCKED,
    OUTBOX_EVENT_ALMOST_UNLOCKED,
    OUTBOX_EVENT_REWARD_EXPIRING,
    OUTBOX_EVENT_REWARD_UNLOCKED,
    OUTBOX_STATUS_NEW,
)
from loyalty.rewards.notifications.rules import (
    build_almost_unlocked_payload,
    build_booking_url,
    build_reward_expiring_payload,
    build_reward_unlocked_payload,
    notification_state,
    should_send_almost_unlocked,
    should_send_unlocked,
)
from loyalty.rewards.notifications.types import NotificationPayload
from loyalty.rewards.programs.types import ProgramSnapshot, RewardType
from loyalty.rewards.progress.types import ProgressUpdate
from loyalty.rewards.vouchers.constants import (
    VOUCHER_EXPIRING_LEAD_TIME,
    VOUCHER_MAINTENANCE_BATCH_SIZE,
)
from loyalty.rewards.vouchers.types import VoucherView

logger = structlog.get_logger(__name__)


class NotificationService:
    @staticmethod
    async def _record_sent(
        session: AsyncSession,
        *,
        customer_id: int,
        program: ProgramSnapshot,
        kind: str,
        event_type: str,
        payload: NotificationPayload,
        booking_id: str | None,
        now_utc: datetime,
    ) -> None:
        event = await OutboxEventsRepo.create(
            session,
            event_type=event_type,
            payload=payload.as_dict(),
            status=OUTBOX_STATUS_NEW,
            created_at=now_utc,
        )
        await LoyaltyNotificationsRepo.create(
            session,
            notification=LoyaltyNotification(
                id=uuid4(),
                customer_id=customer_id,
                business_id=program.business_id,
                program_id=program.id,
                kind=kind,
                booking_id=booking_id,
                outbox_event_id=event.id,
                sent_at=now_utc,
            ),
        )
        logger.info(
            "loyalty_notification_enqueued",
            customer_id=customer_id,
            program_id=str(program.id),
            kind=kind,
            outbox_event_id=str(event.id),
        )

    @staticmethod
    async def trigger_for_progress(
        session: AsyncSession,
        *,
        program: ProgramSnapshot,
        update: ProgressUpdate,
        voucher: VoucherView | None,
        booking_id: str | None,
        now_utc: datetime,
    ) -> list[NotificationPayload]:
        """Enqueues the one-shot almost-unlocked and unlocked notifications.

        Runs in the caller's transaction, so the sent records and outbox rows
        commit together with the progress update that produced them.
        """
        if update.opt_out or update.progress is None:
            return []

        sent_kinds = await LoyaltyNotificationsRepo.list_sent_kinds(
            session,
            customer_id=update.customer_id,
            program_id=program.id,
        )
        state = notification_state(sent_kinds)
        booking_url = build_booking_url(
            get_settings().platform_base_url,
            business_id=program.business_id,
            program_id=program.id,
        )

        if should_send_unlocked(
            was_unlocked=update.was_unlocked,
            now_unlocked=update.now_unlocked,
            state=state,
        ):
            payload = build_reward_unlocked_payload(
                customer_id=update.customer_id,
                program=program,
                voucher_code=voucher.code if voucher else None,
                voucher_expires_at=voucher.expires_at if voucher else None,
                booking_url=booking_url,
            )
            await NotificationService._record_sent(
                session,
                customer_id=update.customer_id,
                program=program,
                kind=NOTIFICATION_KIND_REWARD_UNLOCKED,
                event_type=OUTBOX_EVENT_REWARD_UNLOCKED,
                payload=payload,
                booking_id=booking_id,
                now_utc=now_utc,
            )
            return [payload]

        if update.now_unlocked:
            return []

        if should_send_almost_unlocked(program, update.progress, state=state):
            payload = build_almost_unlocked_payload(
                customer_id=update.customer_id,
                program=program,
                progress=update.progress,
                booking_url=booking_url,
            )
            await NotificationService._record_sent(
                session,
                customer_id=update.customer_id,
                program=program,
                kind=NOTIFICATION_KIND_ALMOST_UNLOCKED,
                event_type=OUTBOX_EVENT_ALMOST_UNLOCKED,
                payload=payload,
                booking_id=booking_id,
                now_utc=now_utc,
            )
            return [payload]

        return []

    @staticmethod
    async def enqueue_reward_expiring(
        session: AsyncSession,
        *,
        now_utc: datetime,
        batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE,
    ) -> int:
        vouchers = await VouchersRepo.list_expiring_unnotified_for_update(
            session,
            now_utc=now_utc,
            expires_before=now_utc + VOUCHER_EXPIRING_LEAD_TIME,
            limit=batch_size,
        )
        for voucher in vouchers:
            payload = build_reward_expiring_payload(
                customer_id=voucher.customer_id,
                business_id=voucher.business_id,
                reward_type=RewardType(voucher.reward_type),
                reward_value=voucher.reward_value,
                voucher_code=voucher.code,
                voucher_expires_at=voucher.expires_at,
                now_utc=now_utc,
            )
            await OutboxEventsRepo.create(
                session,
                event_type=OUTBOX_EVENT_REWARD_EXPIRING,
                payload=payload.as_dict(),
                status=OUTBOX_STATUS_NEW,
                created_at=now_utc,
            )
            voucher.expiring_notified_at = now_utc
            voucher.updated_at = now_utc

        if vouchers:
            await session.flush()
            logger.info("loyalty_reward_expiring_enqueued", vouchers_total=len(vouchers))
        return len(vouchers)
