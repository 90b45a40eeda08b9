from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.loyalty_programs import LoyaltyProgram


class LoyaltyProgramsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, program_id: UUID) -> LoyaltyProgram | None:
        return await session.get(LoyaltyProgram, program_id)

    @staticmethod
    async def get_active_for_business(
        session: AsyncSession,
        business_id: int,
    ) -> LoyaltyProgram | None:
        stmt = select(LoyaltyProgram).where(
            LoyaltyProgram.business_id == business_id,
            LoyaltyProgram.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_for_business_for_update(
        session: AsyncSession,
        business_id: int,
    ) -> LoyaltyProgram | None:
        stmt = (
            select(LoyaltyProgram)
            .where(
                LoyaltyProgram.business_id == business_id,
                LoyaltyProgram.is_active.is_(True),
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_business(session: AsyncSession, business_id: int) -> list[LoyaltyProgram]:
        stmt = (
            select(LoyaltyProgram)
            .where(LoyaltyProgram.business_id == business_id)
            .order_by(LoyaltyProgram.created_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, program: LoyaltyProgram) -> LoyaltyProgram:
        session.add(program)
        await session.flush()
        return program
