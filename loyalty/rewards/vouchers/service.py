from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.vouchers import Voucher
from loyalty.db.repo.vouchers_repo import VouchersRepo
from loyalty.rewards.programs.types import ProgramSnapshot, RewardType
from loyalty.rewards.vouchers.codes import generate_unique_voucher_code
from loyalty.rewards.vouchers.constants import VOUCHER_MAINTENANCE_BATCH_SIZE, VOUCHER_TTL
from loyalty.rewards.vouchers.types import VoucherIssueResult, VoucherStatus, VoucherView

logger = structlog.get_logger(__name__)


class VoucherService:
    @staticmethod
    def view_from_model(voucher: Voucher, *, now_utc: datetime) -> VoucherView:
        if voucher.used:
            status = VoucherStatus.USED
        elif voucher.expired or voucher.expires_at <= now_utc:
            status = VoucherStatus.EXPIRED
        else:
            status = VoucherStatus.ACTIVE
        return VoucherView(
            id=voucher.id,
            code=voucher.code,
            customer_id=voucher.customer_id,
            business_id=voucher.business_id,
            program_id=voucher.program_id,
            reward_type=RewardType(voucher.reward_type),
            reward_value=voucher.reward_value,
            status=status,
            expires_at=voucher.expires_at,
            created_at=voucher.created_at,
            used_at=voucher.used_at,
            used_booking_id=voucher.used_booking_id,
        )

    @staticmethod
    async def get_open_voucher_for_update(
        session: AsyncSession,
        *,
        customer_id: int,
        program_id: UUID,
        now_utc: datetime,
    ) -> Voucher | None:
        return await VouchersRepo.get_open_for_customer_program_for_update(
            session,
            customer_id=customer_id,
            program_id=program_id,
            now_utc=now_utc,
        )

    @staticmethod
    async def issue_for_unlock(
        session: AsyncSession,
        *,
        customer_id: int,
        program: ProgramSnapshot,
        now_utc: datetime,
    ) -> VoucherIssueResult:
        existing = await VoucherService.get_open_voucher_for_update(
            session,
            customer_id=customer_id,
            program_id=program.id,
            now_utc=now_utc,
        )
        if existing is not None:
            return VoucherIssueResult(
                voucher=VoucherService.view_from_model(existing, now_utc=now_utc),
                created=False,
            )

        async def _is_code_taken(code: str) -> bool:
            return await VouchersRepo.code_exists(session, code)

        code = await generate_unique_voucher_code(_is_code_taken)
        voucher = await VouchersRepo.create(
            session,
            voucher=Voucher(
                id=uuid4(),
                code=code,
                customer_id=customer_id,
                business_id=program.business_id,
                program_id=program.id,
                reward_type=program.reward_type.value,
                reward_value=program.reward_value,
                expires_at=now_utc + VOUCHER_TTL,
                used=False,
                expired=False,
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        logger.info(
            "voucher_issued",
            voucher_id=str(voucher.id),
            customer_id=customer_id,
            business_id=program.business_id,
            program_id=str(program.id),
            expires_at=voucher.expires_at.isoformat(),
        )
        return VoucherIssueResult(
            voucher=VoucherService.view_from_model(voucher, now_utc=now_utc),
            created=True,
        )

    @staticmethod
    def mark_used(voucher: Voucher, *, booking_id: str, now_utc: datetime) -> None:
        voucher.used = True
        voucher.used_at = now_utc
        voucher.used_booking_id = booking_id
        voucher.updated_at = now_utc

    @staticmethod
    async def list_customer_vouchers(
        session: AsyncSession,
        *,
        customer_id: int,
        now_utc: datetime,
    ) -> list[VoucherView]:
        vouchers = await VouchersRepo.list_for_customer(session, customer_id)
        return [VoucherService.view_from_model(voucher, now_utc=now_utc) for voucher in vouchers]

    @staticmethod
    async def expire_overdue(
        session: AsyncSession,
        *,
        now_utc: datetime,
        batch_size: int = VOUCHER_MAINTENANCE_BATCH_SIZE,
    ) -> int:
        expired_total = await VouchersRepo.expire_overdue(session, now_utc=now_utc, limit=batch_size)
        if expired_total:
            logger.info("vouchers_expired", expired_total=expired_total)
        return expired_total
