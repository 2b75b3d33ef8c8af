"""
Normalization API Router
Resolves raw product names to simplified names (rules → cache → AI)
"""
from typing import Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, status
from pydantic import BaseModel, Field

from apps.api.dependencies import bearer_token, get_session
from apps.api.routers.sync import QueuedTaskResponse
from apps.api.tasks import queue_normalization
from packages.common.session import SessionContext
from packages.domain.normalization.resolver import NameResolver

logger = structlog.get_logger()
router = APIRouter()


class NormalizationRequest(BaseModel):
    names: List[str] = Field(default_factory=list)


class NormalizationResponse(BaseModel):
    mappings: Dict[str, str]


@router.post("", response_model=NormalizationResponse)
async def normalize_products(
    request: NormalizationRequest,
    session: SessionContext = Depends(get_session),
) -> NormalizationResponse:
    """
    Map raw names to simplified names.

    Rule-matched names are not in the answer (the rule applies when the
    ledger is read). Only one AI batch runs per call, so names past the
    batch limit come back on a later call.
    """
    mappings = await NameResolver.from_session(session).normalize_products(request.names)
    logger.info("normalization_request_complete",
                requested=len(request.names),
                resolved=len(mappings))
    return NormalizationResponse(mappings=mappings)


@router.post("/queue", response_model=QueuedTaskResponse, status_code=status.HTTP_202_ACCEPTED)
async def queue_normalize_products(
    request: NormalizationRequest,
    authorization: Optional[str] = Header(default=None),
) -> QueuedTaskResponse:
    """Queue one normalization batch on the background worker"""
    task_id = queue_normalization(request.names, bearer_token(authorization))
    logger.info("normalization_queued", task_id=task_id, requested=len(request.names))
    return QueuedTaskResponse(task_id=task_id)
