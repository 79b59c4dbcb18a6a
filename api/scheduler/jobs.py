from datetime import timedelta

from scheduler.service import SchedulerService
from services.funds_service import reconcile_withdrawals


RECONCILE_JOB_ID = "reconcile_withdrawals"


def register_reconciliation_job(scheduler: SchedulerService, settings):
    """Resolve withdrawals left in "processing" by an interrupted submit."""
    grace = timedelta(minutes=settings.RECONCILE_GRACE_MINUTES)
    scheduler.register_interval_job(
        RECONCILE_JOB_ID,
        lambda db: reconcile_withdrawals(db, grace),
        minutes=settings.RECONCILE_INTERVAL_MINUTES,
    )
