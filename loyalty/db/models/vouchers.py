from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class Voucher(Base):
    __tablename__ = "vouchers"
    __table_args__ = (
        CheckConstraint(
            "reward_type IN ('free_service','fixed_discount','percentage_discount')",
            name="ck_vouchers_reward_type",
        ),
        CheckConstraint("NOT (used AND expired)", name="ck_vouchers_used_or_expired"),
        Index("idx_vouchers_customer_program", "customer_id", "program_id"),
        Index("idx_vouchers_open_expires", "used", "expired", "expires_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    program_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("loyalty_programs.id"),
        nullable=False,
    )
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reward_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    used_booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    expiring_notified_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    def is_open(self, now_utc: datetime) -> bool:
        return not self.used and not self.expired and self.expires_at > now_utc
