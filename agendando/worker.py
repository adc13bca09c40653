"""
Celery worker entry point
Runs the job queue and the payment-hold sweeper (start beat alongside it)
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from agendando.config.celery_config import celery_app
from agendando.utils.my_logging import setup_logging

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)

import agendando.tasks.job_tasks  # noqa: E402,F401  registers tasks


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Handle worker startup"""
    logger.info("Celery worker ready")
    logger.info(f"Registered tasks: {sorted(t for t in celery_app.tasks.keys() if t.startswith('agendando'))}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Handle worker shutdown"""
    logger.info("Celery worker shutting down...")


if __name__ == "__main__":
    # Run worker with embedded beat directly
    celery_app.start([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
