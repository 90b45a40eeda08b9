from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.repo.loyalty_notifications_repo import LoyaltyNotificationsRepo
from loyalty.db.repo.vouchers_repo import VouchersRepo
from loyalty.rewards.programs.service import ProgramService
from loyalty.rewards.privacy.types import OptOutResult
from loyalty.rewards.progress.service import ProgressService

logger = structlog.get_logger(__name__)


class PrivacyService:
    @staticmethod
    async def opt_out(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> OptOutResult:
        """Withdraws the customer from the business loyalty program.

        Progress is wiped rather than frozen: counters, unlock and window are
        cleared, notification history is deleted and open vouchers expire.
        """
        program = await ProgramService.get_active_program(session, business_id=business_id)
        row = await ProgressService.get_or_create_for_update(
            session,
            customer_id=customer_id,
            business_id=business_id,
            program_id=program.id if program else None,
            now_utc=now_utc,
        )
        changed = not row.opt_out
        ProgressService.reset_row(
            row,
            program_id=program.id if program else row.program_id,
            now_utc=now_utc,
        )
        row.opt_out = True

        vouchers_expired = await VouchersRepo.expire_open_for_customer_business(
            session,
            customer_id=customer_id,
            business_id=business_id,
            now_utc=now_utc,
        )
        notifications_deleted = await LoyaltyNotificationsRepo.delete_for_customer_business(
            session,
            customer_id=customer_id,
            business_id=business_id,
        )
        await session.flush()

        logger.info(
            "loyalty_customer_opted_out",
            customer_id=customer_id,
            business_id=business_id,
            vouchers_expired=vouchers_expired,
            notifications_deleted=notifications_deleted,
        )
        return OptOutResult(
            customer_id=customer_id,
            business_id=business_id,
            opt_out=True,
            changed=changed,
            vouchers_expired=vouchers_expired,
            notifications_deleted=notifications_deleted,
            updated_at=now_utc,
        )

    @staticmethod
    async def opt_in(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> OptOutResult:
        program = await ProgramService.get_active_program(session, business_id=business_id)
        row = await ProgressService.get_or_create_for_update(
            session,
            customer_id=customer_id,
            business_id=business_id,
            program_id=program.id if program else None,
            now_utc=now_utc,
        )
        changed = row.opt_out
        if changed:
            row.opt_out = False
            row.updated_at = now_utc
            row.version += 1
            await session.flush()
            logger.info(
                "loyalty_customer_opted_in",
                customer_id=customer_id,
                business_id=business_id,
            )
        return OptOutResult(
            customer_id=customer_id,
            business_id=business_id,
            opt_out=False,
            changed=changed,
            vouchers_expired=0,
            notifications_deleted=0,
            updated_at=now_utc,
        )
