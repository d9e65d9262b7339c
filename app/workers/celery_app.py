from celery import Celery

from app.core.config import get_settings

settings = get_settings()

PROMO_MAINTENANCE_QUEUE = "q_promo_maintenance"
PROMO_USAGE_RECONCILIATION_TASK = "app.workers.tasks.promo_maintenance.run_promo_usage_reconciliation"
PROMO_ASSIGNMENT_NOTIFICATIONS_TASK = (
    "app.workers.tasks.promo_maintenance.run_promo_assignment_notifications"
)

celery_app = Celery(
    "furniture_promo",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.tasks.promo_maintenance"],
)

celery_app.conf.update(
    task_default_queue="q_default",
    task_routes={"app.workers.tasks.promo_maintenance.*": {"queue": PROMO_MAINTENANCE_QUEUE}},
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    result_expires=3600,
    timezone=settings.app_timezone,
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "promo-usage-reconciliation": {
            "task": PROMO_USAGE_RECONCILIATION_TASK,
            "schedule": float(settings.promo_reconciliation_interval_seconds),
        },
        "promo-assignment-notifications": {
            "task": PROMO_ASSIGNMENT_NOTIFICATIONS_TASK,
            "schedule": float(settings.promo_notification_interval_seconds),
        },
    },
)


@celery_app.task(name="app.workers.celery_app.ping")
def ping() -> dict[str, str]:
    return {"status": "pong", "app": celery_app.main}
