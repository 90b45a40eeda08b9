from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.core.money import to_money
from loyalty.db.models.customer_progress import CustomerProgress
from loyalty.db.repo.business_services_repo import BusinessServicesRepo
from loyalty.db.repo.customer_progress_repo import CustomerProgressRepo
from loyalty.db.repo.loyalty_programs_repo import LoyaltyProgramsRepo
from loyalty.db.repo.vouchers_repo import VouchersRepo
from loyalty.rewards.errors import (
    LoyaltyNotFoundError,
    LoyaltyValidationError,
    RewardAlreadyRedeemedError,
    RewardNotAvailableError,
)
from loyalty.rewards.evaluation.rules import build_quote
from loyalty.rewards.evaluation.types import ApplyRewardResult, DiscountQuote, RewardStatus
from loyalty.rewards.programs.service import ProgramService
from loyalty.rewards.programs.types import ProgramSnapshot, RewardType
from loyalty.rewards.progress.service import ProgressService
from loyalty.rewards.vouchers.codes import normalize_voucher_code
from loyalty.rewards.vouchers.service import VoucherService

logger = structlog.get_logger(__name__)


def _parse_booking_amount(booking_amount: Decimal | str | int) -> Decimal:
    try:
        amount = to_money(booking_amount)
    except (TypeError, ValueError) as exc:
        raise LoyaltyValidationError(f"invalid booking amount: {booking_amount!r}") from exc
    if amount < 0:
        raise LoyaltyValidationError("booking amount cannot be negative")
    return amount


def _ensure_usable(program: ProgramSnapshot, row: CustomerProgress | None) -> CustomerProgress:
    if row is None or row.program_id != program.id or not row.reward_unlocked:
        raise RewardNotAvailableError("reward is not unlocked")
    if row.opt_out:
        raise RewardNotAvailableError("customer opted out of the loyalty program")
    if row.reward_redeemed:
        raise RewardAlreadyRedeemedError("reward was already redeemed")
    return row


class RewardService:
    @staticmethod
    async def _require_active_program(session: AsyncSession, business_id: int) -> ProgramSnapshot:
        program = await ProgramService.get_active_program(session, business_id=business_id)
        if program is None:
            raise RewardNotAvailableError("business has no active loyalty program")
        return program

    @staticmethod
    async def _quote(
        session: AsyncSession,
        *,
        program: ProgramSnapshot,
        booking_amount: Decimal,
    ) -> DiscountQuote:
        cheapest_price = None
        cheapest_name = None
        if program.reward_type == RewardType.FREE_SERVICE:
            cheapest = await BusinessServicesRepo.get_cheapest_active(session, program.business_id)
            if cheapest is not None:
                cheapest_price = cheapest.price
                cheapest_name = cheapest.name
        return build_quote(
            program,
            booking_amount=booking_amount,
            cheapest_service_price=cheapest_price,
            cheapest_service_name=cheapest_name,
        )

    @staticmethod
    async def get_reward_status(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> RewardStatus:
        program = await ProgramService.get_active_program(session, business_id=business_id)
        row = await CustomerProgressRepo.get(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        progress = await ProgressService.compute_for_row(
            session,
            program=program,
            row=row,
            customer_id=customer_id,
            business_id=business_id,
            now_utc=now_utc,
        )
        pinned = program is not None and row is not None and row.program_id == program.id
        status = RewardStatus(
            customer_id=customer_id,
            business_id=business_id,
            progress=progress,
            reward_unlocked=bool(pinned and row.reward_unlocked),
            reward_redeemed=bool(pinned and row.reward_redeemed),
            opt_out=bool(row is not None and row.opt_out),
        )
        if status.reward_usable and program is not None:
            voucher = await VouchersRepo.get_open_for_customer_program(
                session,
                customer_id=customer_id,
                program_id=program.id,
                now_utc=now_utc,
            )
            if voucher is not None:
                status.voucher_code = voucher.code
                status.voucher_expires_at = voucher.expires_at
        return status

    @staticmethod
    async def quote_reward(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        booking_amount: Decimal | str | int,
    ) -> DiscountQuote:
        amount = _parse_booking_amount(booking_amount)
        program = await RewardService._require_active_program(session, business_id)
        row = await CustomerProgressRepo.get(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        _ensure_usable(program, row)
        return await RewardService._quote(session, program=program, booking_amount=amount)

    @staticmethod
    async def apply_reward(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        booking_id: str,
        booking_amount: Decimal | str | int,
        now_utc: datetime,
    ) -> ApplyRewardResult:
        """Applies the unlocked reward to a booking at most once per unlock.

        Holds the progress row lock while the reward is marked redeemed and
        the customer's open voucher is consumed, so two concurrent checkouts
        cannot both receive the discount.
        """
        amount = _parse_booking_amount(booking_amount)
        program = await RewardService._require_active_program(session, business_id)
        row = await CustomerProgressRepo.get_for_update(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        row = _ensure_usable(program, row)
        quote = await RewardService._quote(session, program=program, booking_amount=amount)

        voucher = await VoucherService.get_open_voucher_for_update(
            session,
            customer_id=customer_id,
            program_id=program.id,
            now_utc=now_utc,
        )
        if voucher is not None:
            VoucherService.mark_used(voucher, booking_id=booking_id, now_utc=now_utc)

        row.reward_redeemed = True
        row.redeemed_at = now_utc
        row.updated_at = now_utc
        row.version += 1
        await session.flush()

        logger.info(
            "loyalty_reward_applied",
            customer_id=customer_id,
            business_id=business_id,
            booking_id=booking_id,
            program_id=str(program.id),
            discount=str(quote.discount),
            voucher_id=str(voucher.id) if voucher else None,
        )
        return ApplyRewardResult(
            quote=quote,
            booking_id=booking_id,
            voucher_id=voucher.id if voucher else None,
            redeemed_at=now_utc,
        )

    @staticmethod
    async def redeem_voucher(
        session: AsyncSession,
        *,
        code: str,
        business_id: int,
        booking_id: str,
        booking_amount: Decimal | str | int,
        now_utc: datetime,
    ) -> ApplyRewardResult:
        amount = _parse_booking_amount(booking_amount)
        normalized_code = normalize_voucher_code(code)
        found = await VouchersRepo.get_by_code(session, normalized_code)
        if found is None:
            raise LoyaltyNotFoundError("voucher not found")

        # progress row before voucher, the same order apply_reward locks in
        row = await CustomerProgressRepo.get_for_update(
            session,
            customer_id=found.customer_id,
            business_id=found.business_id,
        )
        voucher = await VouchersRepo.get_by_code_for_update(session, normalized_code)
        if voucher is None:
            raise LoyaltyNotFoundError("voucher not found")
        if voucher.business_id != business_id:
            raise RewardNotAvailableError("voucher belongs to another business")
        if voucher.used:
            raise RewardAlreadyRedeemedError("voucher was already used")
        if voucher.expired or voucher.expires_at <= now_utc:
            raise RewardNotAvailableError("voucher has expired")

        program_model = await LoyaltyProgramsRepo.get_by_id(session, voucher.program_id)
        if program_model is None:
            raise LoyaltyNotFoundError("voucher program not found")
        program = ProgramService.snapshot_from_model(program_model)
        quote = await RewardService._quote(session, program=program, booking_amount=amount)

        VoucherService.mark_used(voucher, booking_id=booking_id, now_utc=now_utc)
        if row is not None and row.program_id == voucher.program_id:
            row.reward_redeemed = True
            row.redeemed_at = now_utc
            row.updated_at = now_utc
            row.version += 1
        await session.flush()

        logger.info(
            "loyalty_voucher_redeemed",
            voucher_id=str(voucher.id),
            customer_id=voucher.customer_id,
            business_id=business_id,
            booking_id=booking_id,
            discount=str(quote.discount),
        )
        return ApplyRewardResult(
            quote=quote,
            booking_id=booking_id,
            voucher_id=voucher.id,
            redeemed_at=now_utc,
        )
