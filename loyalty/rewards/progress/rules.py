from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import ROUND_DOWN, Decimal

from loyalty.rewards.programs.types import ProgramSnapshot, ProgramType
from loyalty.rewards.progress.types import BookingSnapshot, ProgressSnapshot

HUNDRED = Decimal("100")
PERCENT_QUANTUM = Decimal("0.01")


def progress_percentage(current: Decimal, threshold: Decimal) -> Decimal:
    """Returns min(100, current / threshold * 100) truncated to 2 places.

    Truncation keeps 99.999% from reading as 100% before the threshold is met.
    """
    if threshold <= 0:
        return HUNDRED
    raw = current / threshold * HUNDRED
    return min(HUNDRED, raw).quantize(PERCENT_QUANTUM, rounding=ROUND_DOWN)


def window_end(window_started_at: datetime, time_limit_days: int) -> datetime:
    return window_started_at + timedelta(days=time_limit_days)


def is_window_expired(
    window_started_at: datetime | None,
    time_limit_days: int,
    *,
    now_utc: datetime,
) -> bool:
    if window_started_at is None:
        return False
    return now_utc > window_end(window_started_at, time_limit_days)


def days_remaining(
    window_started_at: datetime | None,
    time_limit_days: int,
    *,
    now_utc: datetime,
) -> int:
    if window_started_at is None:
        return time_limit_days
    elapsed_days = max(0, (now_utc - window_started_at).days)
    return max(0, time_limit_days - elapsed_days)


def _ordered(bookings: Sequence[BookingSnapshot]) -> list[BookingSnapshot]:
    return sorted(bookings, key=lambda booking: (booking.completed_at, booking.booking_id))


def _time_limited_progress(
    program: ProgramSnapshot,
    bookings: Sequence[BookingSnapshot],
    *,
    now_utc: datetime,
    window_started_at: datetime | None,
) -> ProgressSnapshot:
    time_limit_days = program.time_limit_days or 0
    ordered = _ordered(bookings)
    if window_started_at is None and ordered:
        window_started_at = ordered[0].completed_at

    qualifying = 0
    if window_started_at is not None:
        closes_at = window_end(window_started_at, time_limit_days)
        qualifying = sum(
            1 for booking in ordered if window_started_at <= booking.completed_at <= closes_at
        )

    current = Decimal(qualifying)
    return ProgressSnapshot(
        program_id=program.id,
        program_type=program.program_type,
        current=current,
        target=program.threshold,
        percentage=progress_percentage(current, program.threshold),
        qualifying_bookings=qualifying,
        window_started_at=window_started_at,
        days_remaining=days_remaining(window_started_at, time_limit_days, now_utc=now_utc),
        window_expired=is_window_expired(window_started_at, time_limit_days, now_utc=now_utc),
    )


def calculate_progress(
    program: ProgramSnapshot | None,
    bookings: Sequence[BookingSnapshot],
    *,
    now_utc: datetime,
    window_started_at: datetime | None = None,
) -> ProgressSnapshot | None:
    """Computes progress toward the program threshold from booking history.

    `bookings` are the customer's completed bookings with the business.
    For time-limited programs only bookings inside the window starting at
    `window_started_at` (or at the earliest booking) count.
    """
    if program is None or not program.is_active:
        return None

    if program.program_type == ProgramType.VISIT_BASED:
        current = Decimal(len(bookings))
        return ProgressSnapshot(
            program_id=program.id,
            program_type=program.program_type,
            current=current,
            target=program.threshold,
            percentage=progress_percentage(current, program.threshold),
            qualifying_bookings=len(bookings),
        )

    if program.program_type == ProgramType.SPEND_BASED:
        current = sum((booking.total_amount for booking in bookings), Decimal("0"))
        return ProgressSnapshot(
            program_id=program.id,
            program_type=program.program_type,
            current=current,
            target=program.threshold,
            percentage=progress_percentage(current, program.threshold),
            qualifying_bookings=len(bookings),
        )

    return _time_limited_progress(
        program,
        bookings,
        now_utc=now_utc,
        window_started_at=window_started_at,
    )


def next_window_start(
    program: ProgramSnapshot,
    *,
    window_started_at: datetime | None,
    reward_unlocked: bool,
    booking_completed_at: datetime,
) -> datetime:
    """Returns the window start to use once a new booking completes.

    A time-limited window that elapsed without unlocking restarts at the new
    booking. Other program types count every booking, so an earlier booking
    that arrives late moves the start back to it.
    """
    if window_started_at is None:
        return booking_completed_at
    if program.program_type != ProgramType.TIME_LIMITED:
        return min(window_started_at, booking_completed_at)
    if reward_unlocked:
        return window_started_at
    if booking_completed_at > window_end(window_started_at, program.time_limit_days or 0):
        return booking_completed_at
    return window_started_at
