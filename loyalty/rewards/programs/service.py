from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from loyalty.core.money import to_money
from loyalty.db.models.business_services import BusinessService
from loyalty.db.models.loyalty_programs import LoyaltyProgram
from loyalty.db.repo.business_services_repo import BusinessServicesRepo
from loyalty.db.repo.loyalty_programs_repo import LoyaltyProgramsRepo
from loyalty.rewards.errors import LoyaltyValidationError
from loyalty.rewards.programs.rules import validate_program_config
from loyalty.rewards.programs.types import (
    ProgramConfigureResult,
    ProgramSnapshot,
    ProgramType,
    RewardType,
)

logger = structlog.get_logger(__name__)


class ProgramService:
    @staticmethod
    def snapshot_from_model(program: LoyaltyProgram) -> ProgramSnapshot:
        return ProgramSnapshot(
            id=program.id,
            business_id=program.business_id,
            program_type=ProgramType(program.program_type),
            threshold=program.threshold,
            reward_type=RewardType(program.reward_type),
            reward_value=program.reward_value,
            is_active=program.is_active,
            time_limit_days=program.time_limit_days,
            almost_unlocked_percent=program.almost_unlocked_percent,
        )

    @staticmethod
    async def get_active_program(
        session: AsyncSession,
        *,
        business_id: int,
    ) -> ProgramSnapshot | None:
        program = await LoyaltyProgramsRepo.get_active_for_business(session, business_id)
        if program is None:
            return None
        return ProgramService.snapshot_from_model(program)

    @staticmethod
    async def configure_program(
        session: AsyncSession,
        *,
        business_id: int,
        program_type: object,
        threshold: object,
        reward_type: object,
        reward_value: object,
        time_limit_days: object = None,
        almost_unlocked_percent: object = None,
        now_utc: datetime,
    ) -> ProgramConfigureResult:
        config = validate_program_config(
            program_type=program_type,
            threshold=threshold,
            reward_type=reward_type,
            reward_value=reward_value,
            time_limit_days=time_limit_days,
            almost_unlocked_percent=almost_unlocked_percent,
        )

        current = await LoyaltyProgramsRepo.get_active_for_business_for_update(session, business_id)
        replaced_program_id = None
        if current is not None:
            current.is_active = False
            current.updated_at = now_utc
            replaced_program_id = current.id
            # one active program per business, flush before inserting the replacement
            await session.flush()

        created = await LoyaltyProgramsRepo.create(
            session,
            program=LoyaltyProgram(
                id=uuid4(),
                business_id=business_id,
                program_type=config.program_type.value,
                threshold=config.threshold,
                time_limit_days=config.time_limit_days,
                reward_type=config.reward_type.value,
                reward_value=config.reward_value,
                almost_unlocked_percent=config.almost_unlocked_percent,
                is_active=True,
                created_at=now_utc,
                updated_at=now_utc,
            ),
        )
        logger.info(
            "loyalty_program_configured",
            business_id=business_id,
            program_id=str(created.id),
            program_type=created.program_type,
            replaced_program_id=str(replaced_program_id) if replaced_program_id else None,
        )
        return ProgramConfigureResult(
            program=ProgramService.snapshot_from_model(created),
            replaced_program_id=replaced_program_id,
            created_at=now_utc,
        )

    @staticmethod
    async def deactivate_program(
        session: AsyncSession,
        *,
        business_id: int,
        now_utc: datetime,
    ) -> ProgramSnapshot | None:
        current = await LoyaltyProgramsRepo.get_active_for_business_for_update(session, business_id)
        if current is None:
            return None

        current.is_active = False
        current.updated_at = now_utc
        await session.flush()
        logger.info(
            "loyalty_program_deactivated",
            business_id=business_id,
            program_id=str(current.id),
        )
        return ProgramService.snapshot_from_model(current)

    @staticmethod
    async def upsert_catalog_service(
        session: AsyncSession,
        *,
        service_id: str,
        business_id: int,
        name: str,
        price: Decimal | str | int,
        is_active: bool = True,
        now_utc: datetime,
    ) -> BusinessService:
        try:
            resolved_price = to_money(price)
        except (TypeError, ValueError) as exc:
            raise LoyaltyValidationError(f"invalid service price: {price!r}") from exc
        if resolved_price < 0:
            raise LoyaltyValidationError("service price cannot be negative")

        service = await BusinessServicesRepo.get_by_id(session, service_id)
        if service is None:
            service = BusinessService(id=service_id, business_id=business_id)
        elif service.business_id != business_id:
            raise LoyaltyValidationError("service belongs to another business")

        service.name = name
        service.price = resolved_price
        service.is_active = is_active
        service.updated_at = now_utc
        return await BusinessServicesRepo.save(session, service=service)
