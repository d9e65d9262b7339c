from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.workers.celery_app import PROMO_MAINTENANCE_QUEUE, celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

CheckResult = dict[str, Any]
SCHEMA_REVISION_SQL = text("SELECT version_num FROM alembic_version LIMIT 1")


def _passed(**details: Any) -> CheckResult:
    return {"status": "ok", **details}


def _failed(check: str, error: str, exc: Exception | None = None) -> CheckResult:
    # Raw exception text may carry DSNs or credentials.
    logger.warning(
        "health_check_failed",
        check=check,
        error=error,
        error_type=type(exc).__name__ if exc is not None else None,
    )
    return {"status": "failed", "error": error}


async def _check_database() -> CheckResult:
    try:
        async with SessionLocal() as session:
            revision = (await session.execute(SCHEMA_REVISION_SQL)).scalar_one_or_none()
    except Exception as exc:
        return _failed("database", "database_unavailable", exc)

    if revision is None:
        return _failed("database", "database_schema_missing")
    return _passed(schema_revision=revision)


async def _check_redis() -> CheckResult:
    client: Redis | None = None
    try:
        client = Redis.from_url(get_settings().redis_url)
        if await client.ping() is not True:
            return _failed("redis", "redis_unexpected_ping_response")
        return _passed()
    except Exception as exc:
        return _failed("redis", "redis_unavailable", exc)
    finally:
        if client is not None:
            await client.aclose()


def _check_celery_worker_sync() -> CheckResult:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = inspector.active_queues() or {}
    except Exception as exc:
        return _failed("celery", "celery_unavailable", exc)

    maintenance_workers = [
        worker
        for worker, queues in replies.items()
        if any(queue.get("name") == PROMO_MAINTENANCE_QUEUE for queue in queues or [])
    ]
    if not maintenance_workers:
        return _failed("celery", "promo_maintenance_worker_missing")
    return _passed(workers=len(maintenance_workers))


async def _check_celery_worker() -> CheckResult:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _probes(*, include_workers: bool) -> dict[str, Callable[[], Awaitable[CheckResult]]]:
    probes: dict[str, Callable[[], Awaitable[CheckResult]]] = {
        "database": _check_database,
        "redis": _check_redis,
    }
    if include_workers:
        probes["celery"] = _check_celery_worker
    return probes


async def _collect_checks(*, include_workers: bool) -> dict[str, CheckResult]:
    probes = _probes(include_workers=include_workers)
    results = await asyncio.gather(*(probe() for probe in probes.values()))
    return dict(zip(probes, results))


def _checks_response(checks: dict[str, CheckResult], *, ok: str, not_ok: str) -> JSONResponse:
    passed = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if passed else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok if passed else not_ok, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    checks = await _collect_checks(include_workers=True)
    return _checks_response(checks, ok="ok", not_ok="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    # Checkout and validation only need the database and redis.
    checks = await _collect_checks(include_workers=False)
    return _checks_response(checks, ok="ready", not_ok="not_ready")
