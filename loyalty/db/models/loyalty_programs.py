from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from loyalty.db.models.base import Base, UTCDateTime


class LoyaltyProgram(Base):
    __tablename__ = "loyalty_programs"
    __table_args__ = (
        CheckConstraint(
            "program_type IN ('visit_based','spend_based','time_limited')",
            name="ck_loyalty_programs_program_type",
        ),
        CheckConstraint(
            "reward_type IN ('free_service','fixed_discount','percentage_discount')",
            name="ck_loyalty_programs_reward_type",
        ),
        CheckConstraint("threshold > 0", name="ck_loyalty_programs_threshold_positive"),
        CheckConstraint("reward_value > 0", name="ck_loyalty_programs_reward_value_positive"),
        CheckConstraint(
            "reward_type <> 'percentage_discount' OR reward_value <= 100",
            name="ck_loyalty_programs_percentage_max",
        ),
        CheckConstraint(
            "program_type <> 'time_limited' OR time_limit_days >= 1",
            name="ck_loyalty_programs_time_limit_required",
        ),
        Index("idx_loyalty_programs_business", "business_id", "created_at"),
        Index(
            "uq_loyalty_programs_business_active",
            "business_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    business_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    program_type: Mapped[str] = mapped_column(String(32), nullable=False)
    threshold: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    time_limit_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reward_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    almost_unlocked_percent: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
