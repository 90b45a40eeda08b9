from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from loyalty.core.money import format_gbp
from loyalty.rewards.notifications.constants import (
    DEFAULT_ALMOST_UNLOCKED_SPEND_PERCENT,
    NOTIFICATION_KIND_ALMOST_UNLOCKED,
    NOTIFICATION_KIND_REWARD_UNLOCKED,
    TEMPLATE_ALMOST_UNLOCKED,
    TEMPLATE_REWARD_EXPIRING,
    TEMPLATE_REWARD_UNLOCKED,
    URGENCY_DAYS_REMAINING,
)
from loyalty.rewards.notifications.types import NotificationPayload, NotificationState
from loyalty.rewards.programs.rules import describe_reward
from loyalty.rewards.programs.types import ProgramSnapshot, ProgramType, RewardType
from loyalty.rewards.progress.types import ProgressSnapshot


def notification_state(sent_kinds: Collection[str]) -> NotificationState:
    if NOTIFICATION_KIND_REWARD_UNLOCKED in sent_kinds:
        return NotificationState.UNLOCKED_SENT
    if NOTIFICATION_KIND_ALMOST_UNLOCKED in sent_kinds:
        return NotificationState.ALMOST_UNLOCKED_SENT
    return NotificationState.NOT_NOTIFIED


def almost_unlocked_spend_percent(program: ProgramSnapshot) -> int:
    return program.almost_unlocked_percent or DEFAULT_ALMOST_UNLOCKED_SPEND_PERCENT


def is_almost_unlocked(program: ProgramSnapshot, progress: ProgressSnapshot) -> bool:
    if progress.current >= program.threshold:
        return False

    if program.program_type == ProgramType.SPEND_BASED:
        return progress.percentage >= Decimal(almost_unlocked_spend_percent(program))

    if program.program_type == ProgramType.TIME_LIMITED and progress.window_expired:
        return False
    return progress.current == program.threshold - 1


def should_send_almost_unlocked(
    program: ProgramSnapshot,
    progress: ProgressSnapshot | None,
    *,
    state: NotificationState,
    opt_out: bool = False,
) -> bool:
    if opt_out or progress is None:
        return False
    if state != NotificationState.NOT_NOTIFIED:
        return False
    return is_almost_unlocked(program, progress)


def should_send_unlocked(
    *,
    was_unlocked: bool,
    now_unlocked: bool,
    state: NotificationState,
    opt_out: bool = False,
) -> bool:
    if opt_out or state == NotificationState.UNLOCKED_SENT:
        return False
    return now_unlocked and not was_unlocked


def build_booking_url(base_url: str, *, business_id: int, program_id: UUID) -> str:
    return f"{base_url.rstrip('/')}/book/{business_id}?loyalty={program_id}"


def _reward_name(program: ProgramSnapshot) -> str:
    if program.reward_type == RewardType.FREE_SERVICE:
        return "1 Free Service"
    if program.reward_type == RewardType.FIXED_DISCOUNT:
        return f"{format_gbp(program.reward_value)} Off Next Booking"
    return f"{program.reward_value.normalize():f}% Off Next Booking"


def _progress_text(program: ProgramSnapshot, progress: ProgressSnapshot) -> str:
    if program.program_type == ProgramType.SPEND_BASED:
        return f"{format_gbp(progress.current)} of {format_gbp(progress.target)} spent"
    text = f"{progress.qualifying_bookings} of {int(progress.target)} visits complete"
    if program.program_type == ProgramType.TIME_LIMITED and progress.days_remaining is not None:
        text = f"{text} ({progress.days_remaining} days remaining)"
    return text


def build_almost_unlocked_payload(
    *,
    customer_id: int,
    program: ProgramSnapshot,
    progress: ProgressSnapshot,
    booking_url: str,
) -> NotificationPayload:
    data: dict[str, object] = {
        "business_id": program.business_id,
        "program_id": str(program.id),
        "program_type": program.program_type.value,
        "reward_name": _reward_name(program),
        "reward_description": describe_reward(program.reward_type, program.reward_value),
        "progress_text": _progress_text(program, progress),
        "percentage": str(progress.percentage),
        "remaining": str(progress.remaining),
        "booking_url": booking_url,
        "show_urgency": False,
    }
    if program.program_type == ProgramType.TIME_LIMITED and progress.days_remaining is not None:
        data["days_remaining"] = progress.days_remaining
        data["show_urgency"] = progress.days_remaining < URGENCY_DAYS_REMAINING
    return NotificationPayload(recipient=customer_id, template=TEMPLATE_ALMOST_UNLOCKED, data=data)


def build_reward_unlocked_payload(
    *,
    customer_id: int,
    program: ProgramSnapshot,
    voucher_code: str | None,
    voucher_expires_at: datetime | None,
    booking_url: str,
) -> NotificationPayload:
    return NotificationPayload(
        recipient=customer_id,
        template=TEMPLATE_REWARD_UNLOCKED,
        data={
            "business_id": program.business_id,
            "program_id": str(program.id),
            "reward_name": _reward_name(program),
            "reward_description": describe_reward(program.reward_type, program.reward_value),
            "voucher_code": voucher_code,
            "expires_at": voucher_expires_at.isoformat() if voucher_expires_at else None,
            "booking_url": booking_url,
        },
    )


def build_reward_expiring_payload(
    *,
    customer_id: int,
    business_id: int,
    reward_type: RewardType,
    reward_value: Decimal,
    voucher_code: str,
    voucher_expires_at: datetime,
    now_utc: datetime,
) -> NotificationPayload:
    return NotificationPayload(
        recipient=customer_id,
        template=TEMPLATE_REWARD_EXPIRING,
        data={
            "business_id": business_id,
            "reward_description": describe_reward(reward_type, reward_value),
            "voucher_code": voucher_code,
            "expires_at": voucher_expires_at.isoformat(),
            "days_left": max(0, (voucher_expires_at - now_utc).days),
        },
    )
