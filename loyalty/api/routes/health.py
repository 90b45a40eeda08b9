from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from loyalty.core.config import get_settings
from loyalty.db.repo.outbox_events_repo import OutboxEventsRepo
from loyalty.db.session import SessionLocal
from loyalty.rewards.notifications.constants import OUTBOX_STATUS_NEW
from loyalty.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["health"])


def _failed(error: str) -> dict[str, Any]:
    return {"status": "failed", "error": error}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
            backlog = await OutboxEventsRepo.count_by_status(session, status=OUTBOX_STATUS_NEW)
    except Exception:
        # driver errors can carry the DSN
        logger.exception("health_database_check_failed")
        return _failed("database_unavailable")
    return {"status": "ok", "outbox_backlog": backlog}


async def _check_redis() -> dict[str, Any]:
    redis_client: Redis | None = None
    try:
        redis_client = Redis.from_url(get_settings().redis_url)
        pong = await redis_client.ping()
    except Exception:
        logger.exception("health_redis_check_failed")
        return _failed("redis_unavailable")
    finally:
        if redis_client is not None:
            await redis_client.aclose()
    if pong is not True:
        return _failed("redis_unexpected_ping_response")
    return {"status": "ok"}


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = (inspector.ping() if inspector is not None else None) or {}
    except Exception:
        logger.exception("health_celery_check_failed")
        return _failed("celery_unavailable")
    if not replies:
        return _failed("no_celery_workers")
    return {"status": "ok", "workers": len(replies)}


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _checks_response(
    checks: dict[str, dict[str, Any]],
    *,
    ok_label: str,
    failed_label: str,
) -> JSONResponse:
    all_ok = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_label if all_ok else failed_label, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    database, redis_check, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_celery_worker(),
    )
    return _checks_response(
        {"database": database, "redis": redis_check, "celery": celery},
        ok_label="ok",
        failed_label="degraded",
    )


@router.get("/ready")
async def ready() -> JSONResponse:
    # booking events queue up in the broker while workers restart
    database, redis_check = await asyncio.gather(_check_database(), _check_redis())
    return _checks_response(
        {"database": database, "redis": redis_check},
        ok_label="ready",
        failed_label="not_ready",
    )
