from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from loyalty.api.routes import health as health_routes
from loyalty.db.repo.outbox_events_repo import OutboxEventsRepo
from loyalty.main import app


async def _ok_check() -> dict[str, str]:
    return {"status": "ok"}


def test_health_ok(monkeypatch) -> None:
    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _ok_check)

    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
            "celery": {"status": "ok"},
        },
    }


def test_live_ok() -> None:
    client = TestClient(app)
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_health_degraded_when_booking_workers_are_down(monkeypatch) -> None:
    async def _no_workers() -> dict[str, str]:
        return {"status": "failed", "error": "no_celery_workers"}

    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _no_workers)

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["checks"]["celery"] == {"status": "failed", "error": "no_celery_workers"}


def test_ready_ignores_celery_but_not_database(monkeypatch) -> None:
    async def _unexpected_celery_probe() -> dict[str, str]:
        raise AssertionError("readiness must not probe workers")

    async def _failed_database() -> dict[str, str]:
        return {"status": "failed", "error": "database_unavailable"}

    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _unexpected_celery_probe)
    monkeypatch.setattr(health_routes, "_check_database", _ok_check)

    client = TestClient(app)
    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json() == {
        "status": "ready",
        "checks": {"database": {"status": "ok"}, "redis": {"status": "ok"}},
    }

    monkeypatch.setattr(health_routes, "_check_database", _failed_database)
    not_ready = client.get("/ready")
    assert not_ready.status_code == 503
    assert not_ready.json()["status"] == "not_ready"


@pytest.mark.asyncio
async def test_database_check_reports_outbox_backlog(monkeypatch, session_factory) -> None:
    async with session_factory.begin() as session:
        for index in range(3):
            await OutboxEventsRepo.create(
                session,
                event_type="loyalty_almost_unlocked",
                payload={"recipient": index},
                status="NEW",
                created_at=datetime(2026, 3, 2, 12, index, tzinfo=timezone.utc),
            )
    monkeypatch.setattr(health_routes, "SessionLocal", session_factory)

    result = await health_routes._check_database()
    assert result == {"status": "ok", "outbox_backlog": 3}


@pytest.mark.asyncio
async def test_database_check_sanitizes_exception(monkeypatch) -> None:
    class _BrokenSession:
        async def __aenter__(self):
            raise RuntimeError("postgresql+asyncpg://loyalty:secret@db/loyalty")

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _BrokenSession())

    result = await health_routes._check_database()
    assert result == {"status": "failed", "error": "database_unavailable"}


@pytest.mark.asyncio
async def test_redis_check_flags_unexpected_ping(monkeypatch) -> None:
    class _OddRedis:
        async def ping(self) -> str:
            return "PONG?"

        async def aclose(self) -> None:
            return None

    monkeypatch.setattr(health_routes.Redis, "from_url", staticmethod(lambda _url: _OddRedis()))

    result = await health_routes._check_redis()
    assert result == {"status": "failed", "error": "redis_unexpected_ping_response"}


def test_celery_check_sanitizes_exception(monkeypatch) -> None:
    class _BrokenControl:
        def inspect(self, timeout: float):
            raise RuntimeError("broker-url=redis://:secret@redis:6379/1")

    monkeypatch.setattr(health_routes.celery_app, "control", _BrokenControl())

    result = health_routes._check_celery_worker_sync()
    assert result == {"status": "failed", "error": "celery_unavailable"}


def test_celery_check_counts_workers(monkeypatch) -> None:
    class _Inspector:
        def ping(self) -> dict[str, dict[str, str]]:
            return {"worker-a@host": {"ok": "pong"}, "worker-b@host": {"ok": "pong"}}

    class _Control:
        def inspect(self, timeout: float) -> _Inspector:
            return _Inspector()

    monkeypatch.setattr(health_routes.celery_app, "control", _Control())

    assert health_routes._check_celery_worker_sync() == {"status": "ok", "workers": 2}
