from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class BusinessService(Base):
    """Read-side mirror of the marketplace service catalogue."""

    __tablename__ = "business_services"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_business_services_price_non_negative"),
        Index("idx_business_services_business_active", "business_id", "is_active"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
