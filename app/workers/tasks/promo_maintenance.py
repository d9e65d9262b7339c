from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.core.config import get_settings
from app.db.repo.promo_repo import PromoRepo
from app.db.session import SessionLocal
from app.economy.promo.admin import PromoAdminService
from app.services.alerts import send_ops_alert
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import (
    PROMO_ASSIGNMENT_NOTIFICATIONS_TASK,
    PROMO_USAGE_RECONCILIATION_TASK,
    celery_app,
)

logger = structlog.get_logger(__name__)


async def run_promo_usage_reconciliation_async() -> dict[str, int]:
    async with SessionLocal() as session:
        drifted = await PromoRepo.list_used_count_drift(
            session,
            limit=get_settings().promo_maintenance_batch_size,
        )

    for promo_code_id, code, used_count, ledger_count in drifted:
        logger.warning(
            "promo_usage_drift_detected",
            promo_code_id=promo_code_id,
            code=code,
            used_count=used_count,
            ledger_count=ledger_count,
        )

    result = {"drifted_codes": len(drifted)}
    if drifted:
        await send_ops_alert(
            event="promo_usage_drift_detected",
            payload={
                "drifted_codes": len(drifted),
                "promo_code_ids": [promo_code_id for promo_code_id, *_ in drifted],
            },
        )
    logger.info("promo_usage_reconciliation_finished", **result)
    return result


async def run_promo_assignment_notifications_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        notices = await PromoAdminService.claim_pending_assignment_notices(
            session,
            limit=get_settings().promo_maintenance_batch_size,
            now_utc=now_utc,
        )

    # Delivery itself belongs to the mailer; this is the hand-off point.
    for notice in notices:
        logger.info(
            "promo_assignment_notification_queued",
            assignment_id=notice.assignment_id,
            promo_code_id=notice.promo_code_id,
            user_id=notice.user_id,
        )

    result = {"notified_assignments": len(notices)}
    logger.info("promo_assignment_notifications_finished", **result)
    return result


@celery_app.task(name=PROMO_USAGE_RECONCILIATION_TASK)
def run_promo_usage_reconciliation() -> dict[str, int]:
    return run_async_job(
        run_promo_usage_reconciliation_async,
        job_name="promo_usage_reconciliation",
    )


@celery_app.task(name=PROMO_ASSIGNMENT_NOTIFICATIONS_TASK)
def run_promo_assignment_notifications() -> dict[str, int]:
    return run_async_job(
        run_promo_assignment_notifications_async,
        job_name="promo_assignment_notifications",
    )
