from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.points_ledger import PointsLedgerEntry


class PointsLedgerRepo:
    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> PointsLedgerEntry | None:
        stmt = select(PointsLedgerEntry).where(PointsLedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, entry: PointsLedgerEntry) -> PointsLedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_user(session: AsyncSession, *, user_id: int) -> list[PointsLedgerEntry]:
        stmt = (
            select(PointsLedgerEntry)
            .where(PointsLedgerEntry.user_id == user_id)
            .order_by(PointsLedgerEntry.created_at.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
