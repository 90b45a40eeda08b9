from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.customer_progress import CustomerProgress


class CustomerProgressRepo:
    @staticmethod
    async def get(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
    ) -> CustomerProgress | None:
        stmt = select(CustomerProgress).where(
            CustomerProgress.customer_id == customer_id,
            CustomerProgress.business_id == business_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_for_update(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
    ) -> CustomerProgress | None:
        stmt = (
            select(CustomerProgress)
            .where(
                CustomerProgress.customer_id == customer_id,
                CustomerProgress.business_id == business_id,
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, progress: CustomerProgress) -> CustomerProgress:
        session.add(progress)
        await session.flush()
        return progress
