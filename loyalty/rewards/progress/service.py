from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.customer_progress import CustomerProgress
from loyalty.db.repo.customer_progress_repo import CustomerProgressRepo
from loyalty.db.repo.loyalty_bookings_repo import LoyaltyBookingsRepo
from loyalty.rewards.evaluation.rules import is_unlocked
from loyalty.rewards.programs.service import ProgramService
from loyalty.rewards.programs.types import ProgramSnapshot
from loyalty.rewards.progress.rules import calculate_progress, next_window_start
from loyalty.rewards.progress.types import (
    BookingSnapshot,
    CustomerProgressView,
    ProgressSnapshot,
    ProgressUpdate,
)

logger = structlog.get_logger(__name__)


class ProgressService:
    @staticmethod
    async def get_or_create_for_update(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        program_id: UUID | None,
        now_utc: datetime,
    ) -> CustomerProgress:
        row = await CustomerProgressRepo.get_for_update(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        if row is not None:
            return row

        row = CustomerProgress(
            id=uuid4(),
            customer_id=customer_id,
            business_id=business_id,
            program_id=program_id,
            visit_count=0,
            total_spent=Decimal("0"),
            reward_unlocked=False,
            reward_redeemed=False,
            opt_out=False,
            version=0,
            created_at=now_utc,
            updated_at=now_utc,
        )
        try:
            return await CustomerProgressRepo.create(session, progress=row)
        except IntegrityError:
            loaded = await CustomerProgressRepo.get_for_update(
                session,
                customer_id=customer_id,
                business_id=business_id,
            )
            if loaded is None:
                raise
            return loaded

    @staticmethod
    def reset_row(row: CustomerProgress, *, program_id: UUID | None, now_utc: datetime) -> None:
        row.program_id = program_id
        row.visit_count = 0
        row.total_spent = Decimal("0")
        row.first_visit_at = None
        row.last_visit_at = None
        row.reward_unlocked = False
        row.reward_redeemed = False
        row.unlocked_at = None
        row.redeemed_at = None
        row.updated_at = now_utc
        row.version += 1

    @staticmethod
    async def load_bookings(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        window_started_at: datetime | None,
    ) -> list[BookingSnapshot]:
        if window_started_at is None:
            return []
        bookings = await LoyaltyBookingsRepo.list_for_customer_since(
            session,
            customer_id=customer_id,
            business_id=business_id,
            since_utc=window_started_at,
        )
        return [
            BookingSnapshot(
                booking_id=booking.booking_id,
                total_amount=booking.total_amount,
                completed_at=booking.completed_at,
            )
            for booking in bookings
        ]

    @staticmethod
    async def compute_for_row(
        session: AsyncSession,
        *,
        program: ProgramSnapshot | None,
        row: CustomerProgress | None,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> ProgressSnapshot | None:
        if program is None:
            return None
        if row is None or row.opt_out or row.program_id != program.id:
            return calculate_progress(program, [], now_utc=now_utc)

        bookings = await ProgressService.load_bookings(
            session,
            customer_id=customer_id,
            business_id=business_id,
            window_started_at=row.first_visit_at,
        )
        return calculate_progress(
            program,
            bookings,
            now_utc=now_utc,
            window_started_at=row.first_visit_at,
        )

    @staticmethod
    async def get_progress(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> CustomerProgressView | None:
        program = await ProgramService.get_active_program(session, business_id=business_id)
        if program is None:
            return None

        row = await CustomerProgressRepo.get(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        snapshot = await ProgressService.compute_for_row(
            session,
            program=program,
            row=row,
            customer_id=customer_id,
            business_id=business_id,
            now_utc=now_utc,
        )
        if snapshot is None:
            return None

        pinned = row is not None and row.program_id == program.id
        return CustomerProgressView(
            customer_id=customer_id,
            business_id=business_id,
            progress=snapshot,
            reward_unlocked=bool(pinned and row.reward_unlocked),
            reward_redeemed=bool(pinned and row.reward_redeemed),
            opt_out=bool(row is not None and row.opt_out),
        )

    @staticmethod
    async def record_completed_booking(
        session: AsyncSession,
        *,
        program: ProgramSnapshot,
        customer_id: int,
        business_id: int,
        booking_completed_at: datetime,
        now_utc: datetime,
    ) -> ProgressUpdate:
        """Recomputes progress after a completed booking under the progress row lock.

        The booking itself must already be stored. Progress pinned to a
        replaced program starts over under `program`, and a time-limited
        window that elapsed without an unlock restarts at this booking.
        The unlock is evaluated as of the booking time so a late event
        still counts inside the window it happened in.
        """
        row = await ProgressService.get_or_create_for_update(
            session,
            customer_id=customer_id,
            business_id=business_id,
            program_id=program.id,
            now_utc=now_utc,
        )
        if row.opt_out:
            logger.info(
                "loyalty_progress_skipped_opt_out",
                customer_id=customer_id,
                business_id=business_id,
            )
            return ProgressUpdate(
                customer_id=customer_id,
                business_id=business_id,
                progress=None,
                was_unlocked=row.reward_unlocked,
                now_unlocked=row.reward_unlocked,
                opt_out=True,
            )

        if row.program_id != program.id:
            logger.info(
                "loyalty_progress_program_switched",
                customer_id=customer_id,
                business_id=business_id,
                old_program_id=str(row.program_id) if row.program_id else None,
                program_id=str(program.id),
            )
            ProgressService.reset_row(row, program_id=program.id, now_utc=now_utc)

        was_unlocked = row.reward_unlocked
        window_started_at = next_window_start(
            program,
            window_started_at=row.first_visit_at,
            reward_unlocked=was_unlocked,
            booking_completed_at=booking_completed_at,
        )
        window_restarted = (
            row.first_visit_at is not None and window_started_at > row.first_visit_at
        )
        row.first_visit_at = window_started_at

        bookings = await ProgressService.load_bookings(
            session,
            customer_id=customer_id,
            business_id=business_id,
            window_started_at=window_started_at,
        )
        evaluated_at = max(booking_completed_at, window_started_at)
        snapshot = calculate_progress(
            program,
            bookings,
            now_utc=evaluated_at,
            window_started_at=window_started_at,
        )
        if snapshot is None:
            raise ValueError("progress requires an active program")

        now_unlocked = was_unlocked or is_unlocked(program, snapshot)
        row.visit_count = snapshot.qualifying_bookings
        row.total_spent = sum((booking.total_amount for booking in bookings), Decimal("0"))
        if row.last_visit_at is None or booking_completed_at > row.last_visit_at:
            row.last_visit_at = booking_completed_at
        if now_unlocked and not was_unlocked:
            row.reward_unlocked = True
            row.unlocked_at = now_utc
        row.updated_at = now_utc
        row.version += 1
        await session.flush()

        if window_restarted:
            logger.info(
                "loyalty_progress_window_restarted",
                customer_id=customer_id,
                business_id=business_id,
                program_id=str(program.id),
            )
        return ProgressUpdate(
            customer_id=customer_id,
            business_id=business_id,
            progress=snapshot,
            was_unlocked=was_unlocked,
            now_unlocked=now_unlocked,
            opt_out=False,
            window_restarted=window_restarted,
        )
