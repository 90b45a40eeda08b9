from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.redemption_ledger import RedemptionLedgerEntry


class RedemptionLedgerRepo:
    @staticmethod
    async def get_latest_by_booking(
        session: AsyncSession,
        booking_id: str,
    ) -> RedemptionLedgerEntry | None:
        stmt = (
            select(RedemptionLedgerEntry)
            .where(RedemptionLedgerEntry.booking_id == booking_id)
            .order_by(RedemptionLedgerEntry.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_live_by_booking_for_update(
        session: AsyncSession,
        booking_id: str,
    ) -> RedemptionLedgerEntry | None:
        stmt = (
            select(RedemptionLedgerEntry)
            .where(
                RedemptionLedgerEntry.booking_id == booking_id,
                RedemptionLedgerEntry.status.in_(("pending", "deducted")),
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        entry: RedemptionLedgerEntry,
    ) -> RedemptionLedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def sum_pending_points(session: AsyncSession, *, user_id: int) -> int:
        stmt = select(func.coalesce(func.sum(RedemptionLedgerEntry.points), 0)).where(
            RedemptionLedgerEntry.user_id == user_id,
            RedemptionLedgerEntry.status == "pending",
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def sum_deducted_points_since(
        session: AsyncSession,
        *,
        user_id: int,
        since_utc: datetime,
    ) -> int:
        stmt = select(func.coalesce(func.sum(RedemptionLedgerEntry.points), 0)).where(
            RedemptionLedgerEntry.user_id == user_id,
            RedemptionLedgerEntry.status == "deducted",
            RedemptionLedgerEntry.deducted_at >= since_utc,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[RedemptionLedgerEntry]:
        stmt = (
            select(RedemptionLedgerEntry)
            .where(RedemptionLedgerEntry.user_id == user_id)
            .order_by(RedemptionLedgerEntry.created_at.desc())
            .limit(max(1, int(limit)))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
