"""Task queue wrappers - API sends task names, never imports worker code."""
from typing import List, Optional

from celery import Celery
from packages.common.config import get_settings

settings = get_settings()

celery_app = Celery('omniticket')
celery_app.conf.broker_url = settings.celery_broker_url
celery_app.conf.result_backend = settings.celery_result_backend


def queue_sync(access_token: Optional[str] = None) -> str:
    """Queue a mailbox sync run."""
    task = celery_app.send_task(
        'services.worker.tasks.sync_mailbox.sync_mailbox_task',
        args=[access_token],
        queue='sync',
    )
    return task.id


def queue_normalization(names: List[str], access_token: Optional[str] = None) -> str:
    """Queue product name normalization."""
    task = celery_app.send_task(
        'services.worker.tasks.sync_mailbox.normalize_products_task',
        args=[names, access_token],
        queue='normalization',
    )
    return task.id
