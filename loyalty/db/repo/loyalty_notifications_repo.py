from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.loyalty_notifications import LoyaltyNotification


class LoyaltyNotificationsRepo:
    @staticmethod
    async def list_sent_kinds(
        session: AsyncSession,
        *,
        customer_id: int,
        program_id: UUID,
    ) -> set[str]:
        stmt = select(LoyaltyNotification.kind).where(
            LoyaltyNotification.customer_id == customer_id,
            LoyaltyNotification.program_id == program_id,
        )
        result = await session.execute(stmt)
        return {str(kind) for kind in result.scalars().all()}

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        notification: LoyaltyNotification,
    ) -> LoyaltyNotification:
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    async def delete_for_customer_business(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
    ) -> int:
        stmt = (
            delete(LoyaltyNotification)
            .where(
                LoyaltyNotification.customer_id == customer_id,
                LoyaltyNotification.business_id == business_id,
            )
            .returning(LoyaltyNotification.id)
        )
        result = await session.execute(stmt)
        return len(list(result.scalars()))
