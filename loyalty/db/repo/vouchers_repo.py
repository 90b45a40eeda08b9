from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.vouchers import Voucher


class VouchersRepo:
    @staticmethod
    async def code_exists(session: AsyncSession, code: str) -> bool:
        stmt = select(exists().where(Voucher.code == code))
        result = await session.execute(stmt)
        return bool(result.scalar())

    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> Voucher | None:
        stmt = select(Voucher).where(Voucher.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> Voucher | None:
        stmt = select(Voucher).where(Voucher.code == code).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_open_for_customer_program(
        session: AsyncSession,
        *,
        customer_id: int,
        program_id: UUID,
        now_utc: datetime,
    ) -> Voucher | None:
        stmt = (
            select(Voucher)
            .where(
                Voucher.customer_id == customer_id,
                Voucher.program_id == program_id,
                Voucher.used.is_(False),
                Voucher.expired.is_(False),
                Voucher.expires_at > now_utc,
            )
            .order_by(Voucher.created_at.asc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_open_for_customer_program_for_update(
        session: AsyncSession,
        *,
        customer_id: int,
        program_id: UUID,
        now_utc: datetime,
    ) -> Voucher | None:
        stmt = (
            select(Voucher)
            .where(
                Voucher.customer_id == customer_id,
                Voucher.program_id == program_id,
                Voucher.used.is_(False),
                Voucher.expired.is_(False),
                Voucher.expires_at > now_utc,
            )
            .order_by(Voucher.created_at.asc())
            .limit(1)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_customer(session: AsyncSession, customer_id: int) -> list[Voucher]:
        stmt = (
            select(Voucher)
            .where(Voucher.customer_id == customer_id)
            .order_by(Voucher.created_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, voucher: Voucher) -> Voucher:
        session.add(voucher)
        await session.flush()
        return voucher

    @staticmethod
    async def expire_open_for_customer_business(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Voucher)
            .where(
                Voucher.customer_id == customer_id,
                Voucher.business_id == business_id,
                Voucher.used.is_(False),
                Voucher.expired.is_(False),
            )
            .values(expired=True, updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def expire_overdue(session: AsyncSession, *, now_utc: datetime, limit: int) -> int:
        candidate_ids = (
            select(Voucher.id)
            .where(
                Voucher.used.is_(False),
                Voucher.expired.is_(False),
                Voucher.expires_at <= now_utc,
            )
            .order_by(Voucher.expires_at.asc())
            .limit(max(1, int(limit)))
            .scalar_subquery()
        )
        stmt = (
            update(Voucher)
            .where(Voucher.id.in_(candidate_ids))
            .values(expired=True, updated_at=now_utc)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def list_expiring_unnotified_for_update(
        session: AsyncSession,
        *,
        now_utc: datetime,
        expires_before: datetime,
        limit: int,
    ) -> list[Voucher]:
        stmt = (
            select(Voucher)
            .where(
                Voucher.used.is_(False),
                Voucher.expired.is_(False),
                Voucher.expiring_notified_at.is_(None),
                Voucher.expires_at > now_utc,
                Voucher.expires_at <= expires_before,
            )
            .order_by(Voucher.expires_at.asc())
            .limit(max(1, int(limit)))
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
