from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.core.money import to_money
from loyalty.db.models.points_accounts import PointsAccount
from loyalty.db.models.points_ledger import PointsLedgerEntry
from loyalty.db.models.redemption_ledger import RedemptionLedgerEntry
from loyalty.db.repo.points_accounts_repo import PointsAccountsRepo
from loyalty.db.repo.points_ledger_repo import PointsLedgerRepo
from loyalty.db.repo.redemption_ledger_repo import RedemptionLedgerRepo
from loyalty.rewards.errors import (
    InsufficientBalanceError,
    LoyaltyNotFoundError,
    LoyaltyValidationError,
)
from loyalty.rewards.redemptions.constants import (
    REDEMPTION_CAP_POINTS,
    REDEMPTION_CAP_WINDOW,
    REDEMPTION_STATUS_DEDUCTED,
    REDEMPTION_STATUS_PENDING,
    REDEMPTION_STATUS_RELEASED,
)
from loyalty.rewards.redemptions.rules import (
    available_balance,
    cap_remaining,
    ensure_balance,
    ensure_within_cap,
    points_for_amount,
    points_to_gbp,
    validate_redemption_fairness,
)
from loyalty.rewards.redemptions.types import PointsEarnResult, RedemptionResult, RedemptionSummary

logger = structlog.get_logger(__name__)


class RedemptionService:
    @staticmethod
    async def _result(
        session: AsyncSession,
        *,
        entry: RedemptionLedgerEntry,
        account: PointsAccount,
        idempotent_replay: bool,
    ) -> RedemptionResult:
        pending = await RedemptionLedgerRepo.sum_pending_points(session, user_id=account.user_id)
        return RedemptionResult(
            entry_id=entry.id,
            user_id=entry.user_id,
            booking_id=entry.booking_id,
            points=entry.points,
            value_gbp=entry.value_gbp,
            status=entry.status,
            idempotent_replay=idempotent_replay,
            balance=account.balance,
            available_balance=available_balance(account.balance, pending),
        )

    @staticmethod
    async def reserve(
        session: AsyncSession,
        *,
        user_id: int,
        booking_id: str,
        points: int,
        booking_total: Decimal | str | int,
        now_utc: datetime,
    ) -> RedemptionResult:
        """Holds points against a booking without touching the balance.

        Pending holds count against both the available balance and the
        rolling cap, so reservations cannot overshoot either on commit.
        """
        if isinstance(points, bool) or not isinstance(points, int):
            raise LoyaltyValidationError("points must be an integer")
        try:
            total = to_money(booking_total)
        except (TypeError, ValueError) as exc:
            raise LoyaltyValidationError(f"invalid booking total: {booking_total!r}") from exc
        value_gbp = validate_redemption_fairness(points=points, booking_total=total)

        account = await PointsAccountsRepo.get_or_create_for_update(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        live = await RedemptionLedgerRepo.get_live_by_booking_for_update(session, booking_id)
        if live is not None:
            raise LoyaltyValidationError(f"booking {booking_id} already has a {live.status} redemption")

        pending = await RedemptionLedgerRepo.sum_pending_points(session, user_id=user_id)
        ensure_balance(balance=account.balance, pending_points=pending, requested=points)
        deducted_in_window = await RedemptionLedgerRepo.sum_deducted_points_since(
            session,
            user_id=user_id,
            since_utc=now_utc - REDEMPTION_CAP_WINDOW,
        )
        ensure_within_cap(
            deducted_in_window=deducted_in_window,
            pending_points=pending,
            requested=points,
        )

        entry = RedemptionLedgerEntry(
            id=uuid4(),
            user_id=user_id,
            booking_id=booking_id,
            points=points,
            value_gbp=value_gbp,
            status=REDEMPTION_STATUS_PENDING,
            created_at=now_utc,
            updated_at=now_utc,
        )
        try:
            await RedemptionLedgerRepo.create(session, entry=entry)
        except IntegrityError as exc:
            raise LoyaltyValidationError(f"booking {booking_id} already has a live redemption") from exc

        logger.info(
            "points_redemption_reserved",
            user_id=user_id,
            booking_id=booking_id,
            points=points,
            value_gbp=str(value_gbp),
        )
        return RedemptionResult(
            entry_id=entry.id,
            user_id=user_id,
            booking_id=booking_id,
            points=points,
            value_gbp=value_gbp,
            status=entry.status,
            idempotent_replay=False,
            balance=account.balance,
            available_balance=available_balance(account.balance, pending + points),
        )

    @staticmethod
    async def commit(
        session: AsyncSession,
        *,
        booking_id: str,
        now_utc: datetime,
    ) -> RedemptionResult:
        found = await RedemptionLedgerRepo.get_latest_by_booking(session, booking_id)
        if found is None:
            raise LoyaltyNotFoundError(f"no redemption for booking {booking_id}")

        account = await PointsAccountsRepo.get_or_create_for_update(
            session,
            user_id=found.user_id,
            now_utc=now_utc,
        )
        entry = await RedemptionLedgerRepo.get_live_by_booking_for_update(session, booking_id)
        if entry is None:
            raise LoyaltyNotFoundError(f"no live redemption for booking {booking_id}")

        if entry.status == REDEMPTION_STATUS_DEDUCTED:
            return await RedemptionService._result(
                session,
                entry=entry,
                account=account,
                idempotent_replay=True,
            )

        if account.balance < entry.points:
            raise InsufficientBalanceError(available=account.balance, requested=entry.points)

        account.balance -= entry.points
        account.version += 1
        account.updated_at = now_utc
        entry.status = REDEMPTION_STATUS_DEDUCTED
        entry.deducted_at = now_utc
        entry.updated_at = now_utc
        await PointsLedgerRepo.create(
            session,
            entry=PointsLedgerEntry(
                id=uuid4(),
                user_id=entry.user_id,
                booking_id=booking_id,
                entry_type="REDEMPTION_DEBIT",
                direction="DEBIT",
                amount=entry.points,
                balance_after=account.balance,
                idempotency_key=f"redemption:{entry.id}:debit",
                metadata_={"value_gbp": str(entry.value_gbp)},
                created_at=now_utc,
            ),
        )
        await session.flush()

        logger.info(
            "points_redemption_committed",
            user_id=entry.user_id,
            booking_id=booking_id,
            points=entry.points,
            balance_after=account.balance,
        )
        return await RedemptionService._result(
            session,
            entry=entry,
            account=account,
            idempotent_replay=False,
        )

    @staticmethod
    async def release(
        session: AsyncSession,
        *,
        booking_id: str,
        now_utc: datetime,
    ) -> RedemptionResult | None:
        found = await RedemptionLedgerRepo.get_latest_by_booking(session, booking_id)
        if found is None:
            logger.info("points_redemption_release_unknown", booking_id=booking_id)
            return None

        account = await PointsAccountsRepo.get_or_create_for_update(
            session,
            user_id=found.user_id,
            now_utc=now_utc,
        )
        entry = await RedemptionLedgerRepo.get_live_by_booking_for_update(session, booking_id)
        if entry is None:
            # only released entries remain for this booking
            return await RedemptionService._result(
                session,
                entry=found,
                account=account,
                idempotent_replay=True,
            )

        if entry.status == REDEMPTION_STATUS_DEDUCTED:
            logger.warning(
                "points_redemption_release_ignored_deducted",
                user_id=entry.user_id,
                booking_id=booking_id,
                points=entry.points,
            )
            return await RedemptionService._result(
                session,
                entry=entry,
                account=account,
                idempotent_replay=True,
            )

        entry.status = REDEMPTION_STATUS_RELEASED
        entry.released_at = now_utc
        entry.updated_at = now_utc
        await session.flush()

        logger.info(
            "points_redemption_released",
            user_id=entry.user_id,
            booking_id=booking_id,
            points=entry.points,
        )
        return await RedemptionService._result(
            session,
            entry=entry,
            account=account,
            idempotent_replay=False,
        )

    @staticmethod
    async def get_summary(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> RedemptionSummary:
        account = await PointsAccountsRepo.get(session, user_id)
        balance = account.balance if account is not None else 0
        pending = await RedemptionLedgerRepo.sum_pending_points(session, user_id=user_id)
        window_started_at = now_utc - REDEMPTION_CAP_WINDOW
        deducted_in_window = await RedemptionLedgerRepo.sum_deducted_points_since(
            session,
            user_id=user_id,
            since_utc=window_started_at,
        )
        return RedemptionSummary(
            user_id=user_id,
            balance=balance,
            pending_points=pending,
            available_balance=available_balance(balance, pending),
            redeemed_in_window=deducted_in_window,
            cap=REDEMPTION_CAP_POINTS,
            cap_remaining=cap_remaining(
                deducted_in_window=deducted_in_window,
                pending_points=pending,
            ),
            window_started_at=window_started_at,
            balance_gbp=points_to_gbp(balance),
        )

    @staticmethod
    async def earn_for_booking(
        session: AsyncSession,
        *,
        user_id: int,
        booking_id: str,
        amount: Decimal,
        now_utc: datetime,
    ) -> PointsEarnResult:
        idempotency_key = f"booking:{booking_id}:earn"
        account = await PointsAccountsRepo.get_or_create_for_update(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        existing = await PointsLedgerRepo.get_by_idempotency_key(session, idempotency_key)
        if existing is not None:
            return PointsEarnResult(
                user_id=user_id,
                booking_id=booking_id,
                points=existing.amount,
                balance=account.balance,
                idempotent_replay=True,
            )

        points = points_for_amount(amount)
        if points <= 0:
            return PointsEarnResult(
                user_id=user_id,
                booking_id=booking_id,
                points=0,
                balance=account.balance,
                idempotent_replay=False,
            )

        account.balance += points
        account.version += 1
        account.updated_at = now_utc
        await PointsLedgerRepo.create(
            session,
            entry=PointsLedgerEntry(
                id=uuid4(),
                user_id=user_id,
                booking_id=booking_id,
                entry_type="BOOKING_EARN",
                direction="CREDIT",
                amount=points,
                balance_after=account.balance,
                idempotency_key=idempotency_key,
                metadata_={"booking_amount": str(amount)},
                created_at=now_utc,
            ),
        )
        await session.flush()

        logger.info(
            "points_earned",
            user_id=user_id,
            booking_id=booking_id,
            points=points,
            balance_after=account.balance,
        )
        return PointsEarnResult(
            user_id=user_id,
            booking_id=booking_id,
            points=points,
            balance=account.balance,
            idempotent_replay=False,
        )
