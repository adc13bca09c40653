# ===== agendando/tasks/job_tasks.py =====
import logging

from agendando.config.celery_config import celery_app
from agendando.config.database import SessionLocal
from agendando.config.settings import get_settings
from agendando.services.booking.booking_service import BookingService
from agendando.services.workflow.job_service import JobService

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(bind=True, ignore_result=True)
def process_pending_jobs(self, limit: int = None):
    """Run one batch of due jobs (emails, webhooks, calendar and Zoom sync, reminders)"""
    db = SessionLocal()
    try:
        return JobService.process_due_jobs(db, limit or settings.JOB_BATCH_SIZE)
    except Exception as exc:
        logger.error(f"Job batch failed: {exc}", exc_info=True)
        raise
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3, ignore_result=True)
def release_expired_payment_holds(self):
    """Cancel PENDING_PAYMENT bookings whose checkout window lapsed"""
    db = SessionLocal()
    try:
        released = BookingService.release_expired_holds(db)
        return {"released": released}
    except Exception as exc:
        logger.error(f"Releasing expired holds failed: {exc}", exc_info=True)
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
    finally:
        db.close()
