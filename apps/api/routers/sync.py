"""
Sync API Router
Runs a mailbox sync inline or queues it on the worker
"""
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel

from apps.api.dependencies import bearer_token, get_session
from apps.api.tasks import queue_sync
from packages.common.schemas.ticket import SyncResult
from packages.common.session import SessionContext
from packages.domain.sync.progress import ProgressRecorder
from packages.domain.sync.sync_engine import SyncEngine

logger = structlog.get_logger()
router = APIRouter()


class SyncResponse(BaseModel):
    results: List[SyncResult]
    progress: List[str]


class QueuedTaskResponse(BaseModel):
    task_id: str
    status: str = "queued"


@router.post("", response_model=SyncResponse)
async def run_sync(session: SessionContext = Depends(get_session)) -> SyncResponse:
    """
    Run one sync now and return per-item results.

    Item failures are reported in the results; only settings or mailbox
    query failures fail the request.
    """
    recorder = ProgressRecorder()
    results = await SyncEngine(session).run(on_progress=recorder)

    logger.info("sync_request_complete",
                items=len(results),
                failed=sum(1 for r in results if r.error))
    return SyncResponse(results=results, progress=recorder.messages)


@router.post("/queue", response_model=QueuedTaskResponse, status_code=status.HTTP_202_ACCEPTED)
async def queue_sync_run(authorization: Optional[str] = Header(default=None)) -> QueuedTaskResponse:
    """Queue a sync on the background worker"""
    task_id = queue_sync(bearer_token(authorization))
    logger.info("sync_queued", task_id=task_id)
    return QueuedTaskResponse(task_id=task_id)
