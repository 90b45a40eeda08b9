from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.points_accounts import PointsAccount


class PointsAccountsRepo:
    @staticmethod
    async def get(session: AsyncSession, user_id: int) -> PointsAccount | None:
        return await session.get(PointsAccount, user_id)

    @staticmethod
    async def get_for_update(session: AsyncSession, user_id: int) -> PointsAccount | None:
        stmt = select(PointsAccount).where(PointsAccount.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create_for_update(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> PointsAccount:
        account = await PointsAccountsRepo.get_for_update(session, user_id)
        if account is not None:
            return account

        account = PointsAccount(
            user_id=user_id,
            balance=0,
            version=0,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(account)
        try:
            await session.flush()
        except IntegrityError:
            loaded = await PointsAccountsRepo.get_for_update(session, user_id)
            if loaded is None:
                raise
            return loaded
        return account
