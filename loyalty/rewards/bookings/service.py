from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.loyalty_bookings import LoyaltyBooking
from loyalty.db.repo.loyalty_bookings_repo import LoyaltyBookingsRepo
from loyalty.rewards.bookings.types import (
    EVENT_TYPE_CANCELLED,
    EVENT_TYPE_COMPLETED,
    BookingCancelled,
    BookingCompleted,
    BookingEvent,
    BookingEventResult,
)
from loyalty.rewards.errors import LoyaltyNotFoundError
from loyalty.rewards.notifications.service import NotificationService
from loyalty.rewards.programs.service import ProgramService
from loyalty.rewards.progress.service import ProgressService
from loyalty.rewards.redemptions.service import RedemptionService
from loyalty.rewards.vouchers.service import VoucherService

logger = structlog.get_logger(__name__)


class BookingEventService:
    @staticmethod
    async def handle_booking_event(
        session: AsyncSession,
        *,
        event: BookingEvent,
        now_utc: datetime,
    ) -> BookingEventResult:
        if isinstance(event, BookingCompleted):
            return await BookingEventService._handle_completed(session, event=event, now_utc=now_utc)
        if isinstance(event, BookingCancelled):
            return await BookingEventService._handle_cancelled(session, event=event, now_utc=now_utc)
        raise TypeError(f"unsupported booking event: {type(event).__name__}")

    @staticmethod
    async def _record_booking(
        session: AsyncSession,
        *,
        event: BookingCompleted,
        now_utc: datetime,
    ) -> bool:
        existing = await LoyaltyBookingsRepo.get_by_booking_id(session, event.booking_id)
        if existing is not None:
            return False
        try:
            await LoyaltyBookingsRepo.create(
                session,
                booking=LoyaltyBooking(
                    id=uuid4(),
                    booking_id=event.booking_id,
                    customer_id=event.customer_id,
                    business_id=event.business_id,
                    total_amount=event.total_amount,
                    service_ids=list(event.service_ids),
                    completed_at=event.occurred_at,
                    recorded_at=now_utc,
                ),
            )
        except IntegrityError:
            loaded = await LoyaltyBookingsRepo.get_by_booking_id(session, event.booking_id)
            if loaded is None:
                raise
            return False
        return True

    @staticmethod
    async def _handle_completed(
        session: AsyncSession,
        *,
        event: BookingCompleted,
        now_utc: datetime,
    ) -> BookingEventResult:
        recorded = await BookingEventService._record_booking(session, event=event, now_utc=now_utc)
        if not recorded:
            logger.info(
                "booking_event_replayed",
                booking_id=event.booking_id,
                event_type=EVENT_TYPE_COMPLETED,
            )
            return BookingEventResult(
                booking_id=event.booking_id,
                event_type=EVENT_TYPE_COMPLETED,
                idempotent_replay=True,
            )

        result = BookingEventResult(booking_id=event.booking_id, event_type=EVENT_TYPE_COMPLETED)
        try:
            result.redemption = await RedemptionService.commit(
                session,
                booking_id=event.booking_id,
                now_utc=now_utc,
            )
        except LoyaltyNotFoundError:
            result.redemption = None

        result.points_earned = await RedemptionService.earn_for_booking(
            session,
            user_id=event.customer_id,
            booking_id=event.booking_id,
            amount=event.total_amount,
            now_utc=now_utc,
        )

        program = await ProgramService.get_active_program(session, business_id=event.business_id)
        if program is None:
            logger.info(
                "booking_completed_without_program",
                booking_id=event.booking_id,
                business_id=event.business_id,
            )
            return result

        update = await ProgressService.record_completed_booking(
            session,
            program=program,
            customer_id=event.customer_id,
            business_id=event.business_id,
            booking_completed_at=event.occurred_at,
            now_utc=now_utc,
        )
        result.progress = update.progress
        result.newly_unlocked = update.newly_unlocked

        voucher = None
        if update.newly_unlocked:
            issued = await VoucherService.issue_for_unlock(
                session,
                customer_id=event.customer_id,
                program=program,
                now_utc=now_utc,
            )
            voucher = issued.voucher
            result.voucher_code = voucher.code

        result.notifications = await NotificationService.trigger_for_progress(
            session,
            program=program,
            update=update,
            voucher=voucher,
            booking_id=event.booking_id,
            now_utc=now_utc,
        )
        logger.info(
            "booking_completed_processed",
            booking_id=event.booking_id,
            customer_id=event.customer_id,
            business_id=event.business_id,
            newly_unlocked=result.newly_unlocked,
            notifications_total=len(result.notifications),
        )
        return result

    @staticmethod
    async def _handle_cancelled(
        session: AsyncSession,
        *,
        event: BookingCancelled,
        now_utc: datetime,
    ) -> BookingEventResult:
        redemption = await RedemptionService.release(
            session,
            booking_id=event.booking_id,
            now_utc=now_utc,
        )
        logger.info(
            "booking_cancelled_processed",
            booking_id=event.booking_id,
            customer_id=event.customer_id,
            released=redemption is not None and not redemption.idempotent_replay,
        )
        return BookingEventResult(
            booking_id=event.booking_id,
            event_type=EVENT_TYPE_CANCELLED,
            idempotent_replay=redemption is not None and redemption.idempotent_replay,
            redemption=redemption,
        )
