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
    Integer,
    Numeric,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class CustomerProgress(Base):
    __tablename__ = "customer_progress"
    __table_args__ = (
        UniqueConstraint("customer_id", "business_id", name="uq_customer_progress_customer_business"),
        CheckConstraint("visit_count >= 0", name="ck_customer_progress_visit_count_non_negative"),
        CheckConstraint("total_spent >= 0", name="ck_customer_progress_total_spent_non_negative"),
        CheckConstraint(
            "reward_unlocked OR NOT reward_redeemed",
            name="ck_customer_progress_redeemed_requires_unlocked",
        ),
        Index("idx_customer_progress_program", "program_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    customer_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    program_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("loyalty_programs.id"),
        nullable=True,
    )
    visit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    first_visit_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_visit_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reward_unlocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reward_redeemed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    opt_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unlocked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    redeemed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
