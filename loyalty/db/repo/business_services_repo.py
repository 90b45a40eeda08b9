from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.business_services import BusinessService


class BusinessServicesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, service_id: str) -> BusinessService | None:
        return await session.get(BusinessService, service_id)

    @staticmethod
    async def get_cheapest_active(
        session: AsyncSession,
        business_id: int,
    ) -> BusinessService | None:
        stmt = (
            select(BusinessService)
            .where(
                BusinessService.business_id == business_id,
                BusinessService.is_active.is_(True),
            )
            .order_by(BusinessService.price.asc(), BusinessService.id.asc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def save(session: AsyncSession, *, service: BusinessService) -> BusinessService:
        session.add(service)
        await session.flush()
        return service
