# ===== agendando/services/workflow/job_service.py =====
"""
Durable job queue. Booking side effects are written here inside the
request's transaction and executed later by the Celery job runner.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from agendando.config.settings import get_settings
from agendando.models.job import Job, JobStatus, JobType

settings = get_settings()
logger = logging.getLogger(__name__)

JobHandler = Callable[[Session, Job], None]


class JobService:

    @staticmethod
    def enqueue(
            db: Session,
            job_type: JobType,
            payload: Dict,
            scheduled_at: Optional[datetime] = None,
            host_id: Optional[UUID] = None,
            booking_id: Optional[UUID] = None,
    ) -> Job:
        """Add a pending job to the session; the caller commits"""
        job = Job(
            type=job_type.value,
            payload=payload,
            status=JobStatus.PENDING,
            attempts=0,
            scheduled_at=scheduled_at or datetime.now(timezone.utc),
            host_id=host_id,
            booking_id=booking_id,
        )
        db.add(job)
        db.flush()
        logger.debug(f"Enqueued {job_type.value} job {job.id} for {job.scheduled_at.isoformat()}")
        return job

    @staticmethod
    def cancel_pending(db: Session, booking_id: UUID, job_type: JobType) -> int:
        """Mark a booking's pending jobs of one type CANCELLED; the caller commits"""
        return db.query(Job).filter(
            Job.booking_id == booking_id,
            Job.type == job_type.value,
            Job.status == JobStatus.PENDING,
        ).update({Job.status: JobStatus.CANCELLED}, synchronize_session=False)

    @staticmethod
    def claim_due_jobs(db: Session, limit: int, now: datetime) -> List[Job]:
        """
        Lock up to `limit` due jobs, mark them PROCESSING and count the
        attempt. SKIP LOCKED lets several workers poll concurrently.
        """
        jobs = db.query(Job).filter(
            Job.status == JobStatus.PENDING,
            Job.scheduled_at <= now,
        ).order_by(
            Job.scheduled_at, Job.created_at
        ).limit(limit).with_for_update(skip_locked=True).all()

        for job in jobs:
            job.status = JobStatus.PROCESSING
            job.attempts += 1
        db.commit()
        return jobs

    @staticmethod
    def process_due_jobs(
            db: Session,
            limit: Optional[int] = None,
            now: Optional[datetime] = None,
            handlers: Optional[Dict[str, JobHandler]] = None,
    ) -> Dict[str, int]:
        """Run due jobs once. Returns counts by outcome."""
        if handlers is None:
            from agendando.services.workflow.job_handlers import JOB_HANDLERS
            handlers = JOB_HANDLERS

        now = now or datetime.now(timezone.utc)
        jobs = JobService.claim_due_jobs(db, limit or settings.JOB_BATCH_SIZE, now)
        results = {"completed": 0, "retrying": 0, "failed": 0}

        for job in jobs:
            handler = handlers.get(job.type)
            if handler is None:
                logger.error(f"Unknown job type {job.type} for job {job.id}")
                job.status = JobStatus.FAILED
                job.error = f"Unknown job type: {job.type}"
                db.commit()
                results["failed"] += 1
                continue

            try:
                handler(db, job)
                job.status = JobStatus.COMPLETED
                job.completed_at = datetime.now(timezone.utc)
                job.error = None
                db.commit()
                results["completed"] += 1
            except Exception as e:
                db.rollback()
                logger.error(f"Job {job.id} ({job.type}) failed on attempt {job.attempts}: {e}", exc_info=True)
                job.error = str(e)[:1000]
                if job.attempts >= settings.JOB_MAX_ATTEMPTS:
                    job.status = JobStatus.FAILED
                    results["failed"] += 1
                else:
                    job.status = JobStatus.PENDING
                    results["retrying"] += 1
                db.commit()

        if jobs:
            logger.info(f"Processed {len(jobs)} jobs: {results}")
        return results
