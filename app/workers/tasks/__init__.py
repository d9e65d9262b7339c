from app.workers.tasks.promo_maintenance import (
    run_promo_assignment_notifications,
    run_promo_usage_reconciliation,
)

__all__ = [
    "run_promo_assignment_notifications",
    "run_promo_usage_reconciliation",
]
