from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.db.models.outbox_events import OutboxEvent


class OutboxEventsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        event_type: str,
        payload: dict[str, object],
        status: str,
        created_at: datetime,
    ) -> OutboxEvent:
        event = OutboxEvent(
            id=uuid4(),
            event_type=event_type,
            payload=payload,
            status=status,
            created_at=created_at,
        )
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def list_by_status(
        session: AsyncSession,
        *,
        status: str,
        event_types: tuple[str, ...] | None = None,
        limit: int = 100,
    ) -> list[OutboxEvent]:
        stmt = select(OutboxEvent).where(OutboxEvent.status == status)
        if event_types:
            stmt = stmt.where(OutboxEvent.event_type.in_(event_types))
        stmt = stmt.order_by(OutboxEvent.created_at.asc()).limit(max(1, int(limit)))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_by_status(session: AsyncSession, *, status: str) -> int:
        stmt = select(func.count(OutboxEvent.id)).where(OutboxEvent.status == status)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
