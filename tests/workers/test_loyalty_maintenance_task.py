from __future__ import annotations

from datetime import timedelta

import pytest

from loyalty.rewards.vouchers.service import VoucherService
from loyalty.workers.tasks import loyalty_maintenance
from tests.services.loyalty_fixtures import CUSTOMER_ID, _configure_program


def test_run_voucher_expiry_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, int]:
        return {"expired_vouchers": 3}

    monkeypatch.setattr(loyalty_maintenance, "run_voucher_expiry_async", fake_async)

    result = loyalty_maintenance.run_voucher_expiry()
    assert result["expired_vouchers"] == 3


def test_run_reward_expiring_notifications_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, int]:
        return {"expiring_notices": batch_size}

    monkeypatch.setattr(loyalty_maintenance, "run_reward_expiring_notifications_async", fake_async)

    result = loyalty_maintenance.run_reward_expiring_notifications(batch_size=7)
    assert result["expiring_notices"] == 7


def test_beat_schedule_registers_loyalty_jobs() -> None:
    schedule = loyalty_maintenance.celery_app.conf.beat_schedule

    assert schedule["loyalty-voucher-expiry-every-10-minutes"]["schedule"] == 600.0
    assert (
        schedule["loyalty-reward-expiring-notifications-hourly"]["task"]
        == "loyalty.workers.tasks.loyalty_maintenance.run_reward_expiring_notifications"
    )


@pytest.mark.asyncio
async def test_voucher_maintenance_jobs_against_database(monkeypatch, session_factory, now_utc) -> None:
    monkeypatch.setattr(loyalty_maintenance, "SessionLocal", session_factory)
    program = await _configure_program(session_factory, now_utc=now_utc - timedelta(days=200), threshold=3)
    async with session_factory.begin() as session:
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID,
            program=program,
            now_utc=now_utc - timedelta(days=95),
        )
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID + 1,
            program=program,
            now_utc=now_utc - timedelta(days=89),
        )

    expired = await loyalty_maintenance.run_voucher_expiry_async(now_utc=now_utc)
    notices = await loyalty_maintenance.run_reward_expiring_notifications_async(now_utc=now_utc)

    assert expired == {"expired_vouchers": 1}
    assert notices == {"expiring_notices": 1}
