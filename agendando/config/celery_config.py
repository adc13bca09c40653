# ===== agendando/config/celery_config.py =====
"""Celery application: Redis broker, JSON tasks and the beat schedule"""
from datetime import timedelta

from celery import Celery

from agendando.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure the Celery application"""
    app = Celery(
        "agendando",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["agendando.tasks.job_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        worker_max_tasks_per_child=1000,
        result_expires=3600,
        beat_schedule={
            "process-pending-jobs": {
                "task": "agendando.tasks.job_tasks.process_pending_jobs",
                "schedule": timedelta(seconds=settings.JOB_POLL_SECONDS),
            },
            "release-expired-payment-holds": {
                "task": "agendando.tasks.job_tasks.release_expired_payment_holds",
                "schedule": timedelta(seconds=settings.PAYMENT_HOLD_SWEEP_SECONDS),
            },
        },
    )
    return app


celery_app = create_celery_app()
