"""
Mailbox sync and product normalization tasks

Flow (sync_mailbox_task):
1. Open a session (service account credentials, or a user token passed in)
2. Run the sync engine over the labeled mailbox
3. Return per-item results as JSON-serializable dicts

Tasks never retry automatically: items that failed stay unlabeled and are
picked up by the next scheduled run.
"""
import asyncio
from typing import Any, Dict, List, Optional

import structlog

from services.worker.celery_app import app
from packages.common.session import open_session
from packages.domain.normalization.resolver import NameResolver
from packages.domain.sync.progress import ProgressRecorder
from packages.domain.sync.sync_engine import SyncEngine

logger = structlog.get_logger()


async def run_sync(access_token: Optional[str] = None) -> Dict[str, Any]:
    """Open a session and run one sync; returns results and progress messages"""
    session = await open_session(access_token=access_token)
    recorder = ProgressRecorder()
    results = await SyncEngine(session).run(on_progress=recorder)
    return {
        "results": [r.model_dump(mode="json") for r in results],
        "progress": recorder.messages,
    }


async def run_normalization(names: List[str], access_token: Optional[str] = None) -> Dict[str, str]:
    session = await open_session(access_token=access_token)
    return await NameResolver.from_session(session).normalize_products(names)


@app.task(bind=True, name="services.worker.tasks.sync_mailbox.sync_mailbox_task")
def sync_mailbox_task(self, access_token: Optional[str] = None) -> Dict[str, Any]:
    """
    Celery task: sync the labeled mailbox into the ledger.

    Args:
        access_token: Optional user OAuth token (service account otherwise)
    """
    logger.info("sync_task_started", task_id=self.request.id)
    outcome = asyncio.run(run_sync(access_token))
    logger.info("sync_task_complete",
                task_id=self.request.id,
                items=len(outcome["results"]))
    return outcome


@app.task(bind=True, name="services.worker.tasks.sync_mailbox.normalize_products_task")
def normalize_products_task(self, names: List[str], access_token: Optional[str] = None) -> Dict[str, str]:
    """Celery task: resolve product names through rules, cache and AI"""
    logger.info("normalization_task_started", task_id=self.request.id, names=len(names))
    mapping = asyncio.run(run_normalization(names, access_token))
    logger.info("normalization_task_complete", task_id=self.request.id, resolved=len(mapping))
    return mapping
