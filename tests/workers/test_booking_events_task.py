from __future__ import annotations

from datetime import timedelta

import pytest

from loyalty.rewards.errors import LoyaltyValidationError
from loyalty.workers.tasks import booking_events
from tests.services.loyalty_fixtures import BUSINESS_ID, CUSTOMER_ID, _configure_program


def _payload(booking_id: str, *, timestamp: str, amount: str = "25.00") -> dict[str, object]:
    return {
        "event_type": "booking_completed",
        "booking_id": booking_id,
        "customer_id": CUSTOMER_ID,
        "business_id": BUSINESS_ID,
        "total_amount": amount,
        "timestamp": timestamp,
        "service_ids": ["svc-cut"],
    }


def test_process_booking_event_returns_async_summary(monkeypatch) -> None:
    async def fake_async(payload: dict[str, object], *, now_utc=None) -> dict[str, object]:
        return {"booking_id": payload["booking_id"], "idempotent_replay": False}

    monkeypatch.setattr(booking_events, "process_booking_event_async", fake_async)

    result = booking_events.process_booking_event({"booking_id": "bk-1"})
    assert result == {"booking_id": "bk-1", "idempotent_replay": False}


def test_process_booking_event_does_not_retry_rejected_payload(monkeypatch) -> None:
    async def fake_async(payload: dict[str, object], *, now_utc=None) -> dict[str, object]:
        raise LoyaltyValidationError("total_amount is required")

    monkeypatch.setattr(booking_events, "process_booking_event_async", fake_async)

    result = booking_events.process_booking_event({"booking_id": "bk-2"})
    assert result == {"booking_id": "bk-2", "rejected": True, "error": "total_amount is required"}


def test_retry_backoff_seconds_honors_max(monkeypatch) -> None:
    monkeypatch.setattr(booking_events.random, "randint", lambda _a, _b: 0)

    assert booking_events._retry_backoff_seconds(next_retry_attempt=12, backoff_max_seconds=300) == 300
    assert booking_events._retry_backoff_seconds(next_retry_attempt=3, backoff_max_seconds=300) == 4


def test_booking_event_task_retry_config_is_enabled() -> None:
    task = booking_events.process_booking_event._get_current_object()

    assert task.max_retries == booking_events.TASK_MAX_RETRIES
    assert task.reject_on_worker_lost is True
    assert task.acks_late is True


@pytest.mark.asyncio
async def test_process_booking_event_async_runs_in_one_transaction(
    monkeypatch,
    session_factory,
    now_utc,
) -> None:
    monkeypatch.setattr(booking_events, "SessionLocal", session_factory)
    await _configure_program(session_factory, now_utc=now_utc - timedelta(days=30), threshold=2)
    first_at = (now_utc - timedelta(days=2)).isoformat()
    second_at = (now_utc - timedelta(days=1)).isoformat()

    first = await booking_events.process_booking_event_async(
        _payload("bk-task-1", timestamp=first_at),
        now_utc=now_utc,
    )
    second = await booking_events.process_booking_event_async(
        _payload("bk-task-2", timestamp=second_at),
        now_utc=now_utc,
    )
    replay = await booking_events.process_booking_event_async(
        _payload("bk-task-2", timestamp=second_at),
        now_utc=now_utc,
    )

    assert first["notifications"] == 1
    assert first["points_earned"] == 25
    assert second["newly_unlocked"] is True
    assert second["voucher_code_issued"] is True
    assert replay["idempotent_replay"] is True
    assert replay["notifications"] == 0
    assert replay["points_earned"] == 0


@pytest.mark.asyncio
async def test_process_booking_event_async_rejects_malformed_payload(monkeypatch, session_factory) -> None:
    monkeypatch.setattr(booking_events, "SessionLocal", session_factory)

    with pytest.raises(LoyaltyValidationError):
        await booking_events.process_booking_event_async({"event_type": "booking_completed"})
