from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, BigInteger, CheckConstraint, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class LoyaltyBooking(Base):
    """Completed booking as seen by the loyalty rules."""

    __tablename__ = "loyalty_bookings"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_loyalty_bookings_total_non_negative"),
        Index("idx_loyalty_bookings_customer_business", "customer_id", "business_id", "completed_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    service_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
