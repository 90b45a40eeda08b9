from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from loyalty.db.models.outbox_events import OutboxEvent
from loyalty.rewards.notifications.service import NotificationService
from loyalty.rewards.vouchers.service import VoucherService
from loyalty.rewards.vouchers.types import VoucherStatus
from tests.services.loyalty_fixtures import CUSTOMER_ID, _configure_program


@pytest.mark.asyncio
async def test_issue_for_unlock_keeps_one_open_voucher(session_factory, now_utc) -> None:
    program = await _configure_program(session_factory, now_utc=now_utc, threshold=3)

    async with session_factory.begin() as session:
        first = await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID,
            program=program,
            now_utc=now_utc,
        )
    async with session_factory.begin() as session:
        second = await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID,
            program=program,
            now_utc=now_utc + timedelta(days=1),
        )

    assert first.created is True
    assert second.created is False
    assert second.voucher.code == first.voucher.code
    assert first.voucher.expires_at == now_utc + timedelta(days=90)
    assert first.voucher.status == VoucherStatus.ACTIVE


@pytest.mark.asyncio
async def test_vouchers_are_listed_per_customer(session_factory, now_utc) -> None:
    program = await _configure_program(session_factory, now_utc=now_utc, threshold=3)
    async with session_factory.begin() as session:
        await VoucherService.issue_for_unlock(session, customer_id=CUSTOMER_ID, program=program, now_utc=now_utc)
        await VoucherService.issue_for_unlock(session, customer_id=CUSTOMER_ID + 1, program=program, now_utc=now_utc)

    async with session_factory() as session:
        mine = await VoucherService.list_customer_vouchers(session, customer_id=CUSTOMER_ID, now_utc=now_utc)

    assert len(mine) == 1
    assert mine[0].customer_id == CUSTOMER_ID


@pytest.mark.asyncio
async def test_expire_overdue_marks_only_past_vouchers(session_factory, now_utc) -> None:
    program = await _configure_program(session_factory, now_utc=now_utc - timedelta(days=200), threshold=3)
    async with session_factory.begin() as session:
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID,
            program=program,
            now_utc=now_utc - timedelta(days=100),
        )
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID + 1,
            program=program,
            now_utc=now_utc - timedelta(days=10),
        )

    async with session_factory.begin() as session:
        expired_total = await VoucherService.expire_overdue(session, now_utc=now_utc)
    async with session_factory.begin() as session:
        second_run = await VoucherService.expire_overdue(session, now_utc=now_utc)

    assert expired_total == 1
    assert second_run == 0
    async with session_factory() as session:
        stale = await VoucherService.list_customer_vouchers(session, customer_id=CUSTOMER_ID, now_utc=now_utc)
        fresh = await VoucherService.list_customer_vouchers(session, customer_id=CUSTOMER_ID + 1, now_utc=now_utc)
    assert stale[0].status == VoucherStatus.EXPIRED
    assert fresh[0].status == VoucherStatus.ACTIVE


@pytest.mark.asyncio
async def test_reward_expiring_notice_is_sent_once(session_factory, now_utc) -> None:
    program = await _configure_program(session_factory, now_utc=now_utc - timedelta(days=200), threshold=3)
    async with session_factory.begin() as session:
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID,
            program=program,
            now_utc=now_utc - timedelta(days=88),
        )
        await VoucherService.issue_for_unlock(
            session,
            customer_id=CUSTOMER_ID + 1,
            program=program,
            now_utc=now_utc - timedelta(days=30),
        )

    async with session_factory.begin() as session:
        first_run = await NotificationService.enqueue_reward_expiring(session, now_utc=now_utc)
    async with session_factory.begin() as session:
        second_run = await NotificationService.enqueue_reward_expiring(session, now_utc=now_utc)

    assert first_run == 1
    assert second_run == 0
    async with session_factory() as session:
        events = (await session.execute(select(OutboxEvent))).scalars().all()
    assert len(events) == 1
    assert events[0].event_type == "loyalty_reward_expiring"
    assert events[0].payload["recipient"] == CUSTOMER_ID
    assert events[0].payload["data"]["days_left"] == 2
