"""
Celery application configuration for background tasks
"""
from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown
import structlog

from packages.common.config import get_settings
from packages.common.log_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = structlog.get_logger()

# Create Celery app
app = Celery(
    "omniticket_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Europe/Madrid",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=900,  # 15 minutes hard limit
    task_soft_time_limit=840,

    # Result backend settings
    result_expires=3600,
    result_extended=True,

    # Sync runs are sequential per user; one at a time per worker process
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,

    # Task routing
    task_routes={
        "services.worker.tasks.sync_mailbox.sync_mailbox_task": {"queue": "sync"},
        "services.worker.tasks.sync_mailbox.normalize_products_task": {"queue": "normalization"},
    },

    # Beat schedule (periodic tasks)
    beat_schedule={
        "sync-mailbox": {
            "task": "services.worker.tasks.sync_mailbox.sync_mailbox_task",
            "schedule": settings.sync_schedule_seconds,
            "options": {"queue": "sync"},
        },
    },
)

# Import tasks explicitly to register them
from services.worker.tasks import sync_mailbox


@worker_process_init.connect
def init_worker(**kwargs):
    """Initialize worker process"""
    logger.info("celery_worker_starting",
                concurrency=kwargs.get("concurrency", "unknown"),
                spreadsheet_name=settings.spreadsheet_name)


@worker_process_shutdown.connect
def shutdown_worker(**kwargs):
    logger.info("celery_worker_shutting_down")


if __name__ == "__main__":
    app.start()
