from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from app.db.session import dispose_engine

T = TypeVar("T")
logger = structlog.get_logger(__name__)


def _elapsed_ms(started_at: float) -> int:
    return int((time.monotonic() - started_at) * 1000)


async def _run_job(job_name: str, job: Callable[[], Awaitable[T]]) -> T:
    # asyncpg connections are bound to the loop that opened them.
    await dispose_engine()
    started_at = time.monotonic()
    try:
        result = await job()
    except Exception:
        logger.exception("worker_job_failed", job=job_name, duration_ms=_elapsed_ms(started_at))
        raise
    finally:
        await dispose_engine()

    logger.info("worker_job_finished", job=job_name, duration_ms=_elapsed_ms(started_at))
    return result


def run_async_job(job: Callable[[], Awaitable[T]], *, job_name: str) -> T:
    """Run an async maintenance job from a sync Celery task on a fresh loop."""
    return asyncio.run(_run_job(job_name, job))
