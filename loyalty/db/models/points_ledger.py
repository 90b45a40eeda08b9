from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, BigInteger, CheckConstraint, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class PointsLedgerEntry(Base):
    __tablename__ = "points_ledger"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_points_ledger_amount_positive"),
        CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_points_ledger_direction"),
        CheckConstraint(
            "entry_type IN ('BOOKING_EARN','REDEMPTION_DEBIT')",
            name="ck_points_ledger_entry_type",
        ),
        Index("idx_points_ledger_user_created", "user_id", "created_at"),
        Index("idx_points_ledger_booking", "booking_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entry_type: Mapped[str] = mapped_column(String(32), nullable=False)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(96), unique=True, nullable=False)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    @property
    def delta(self) -> int:
        return self.amount if self.direction == "CREDIT" else -self.amount
