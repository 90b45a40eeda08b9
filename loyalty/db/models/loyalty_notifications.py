from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class LoyaltyNotification(Base):
    __tablename__ = "loyalty_notifications"
    __table_args__ = (
        UniqueConstraint(
            "customer_id",
            "program_id",
            "kind",
            name="uq_loyalty_notifications_customer_program_kind",
        ),
        CheckConstraint(
            "kind IN ('ALMOST_UNLOCKED','REWARD_UNLOCKED')",
            name="ck_loyalty_notifications_kind",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    program_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("loyalty_programs.id"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    outbox_event_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
