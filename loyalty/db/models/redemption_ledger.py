from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, Numeric, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class RedemptionLedgerEntry(Base):
    __tablename__ = "redemption_ledger"
    __table_args__ = (
        CheckConstraint("points > 0", name="ck_redemption_ledger_points_positive"),
        CheckConstraint(
            "status IN ('pending','deducted','released')",
            name="ck_redemption_ledger_status",
        ),
        Index("idx_redemption_ledger_user_status_created", "user_id", "status", "created_at"),
        Index(
            "uq_redemption_ledger_booking_live",
            "booking_id",
            unique=True,
            postgresql_where=text("status IN ('pending','deducted')"),
            sqlite_where=text("status IN ('pending','deducted')"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    booking_id: Mapped[str] = mapped_column(String(64), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    value_gbp: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    deducted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def delta(self) -> int:
        return -self.points
