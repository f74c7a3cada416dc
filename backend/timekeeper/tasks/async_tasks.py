import logging

from timekeeper.celery_app import celery_app
from timekeeper.core.database import SessionLocal
from timekeeper.services.schedule_reconciliation import ScheduleReconciliationService

logger = logging.getLogger(__name__)


@celery_app.task(name="reconcile_schedule_statuses")
def reconcile_schedule_statuses():
    """
    Periodic task: move past pending/confirmed schedules to completed or no-show
    """
    db = SessionLocal()
    try:
        result = ScheduleReconciliationService(db).run()
        if result["updated"]:
            logger.info(f"Schedule reconciliation updated {result['updated']} schedules")
        return result
    finally:
        db.close()
