from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.loyalty_bookings import LoyaltyBooking


class LoyaltyBookingsRepo:
    @staticmethod
    async def get_by_booking_id(session: AsyncSession, booking_id: str) -> LoyaltyBooking | None:
        stmt = select(LoyaltyBooking).where(LoyaltyBooking.booking_id == booking_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_customer_since(
        session: AsyncSession,
        *,
        customer_id: int,
        business_id: int,
        since_utc: datetime,
    ) -> list[LoyaltyBooking]:
        stmt = (
            select(LoyaltyBooking)
            .where(
                LoyaltyBooking.customer_id == customer_id,
                LoyaltyBooking.business_id == business_id,
                LoyaltyBooking.completed_at >= since_utc,
            )
            .order_by(LoyaltyBooking.completed_at.asc(), LoyaltyBooking.booking_id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, booking: LoyaltyBooking) -> LoyaltyBooking:
        session.add(booking)
        await session.flush()
        return booking
