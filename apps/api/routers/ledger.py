"""
Ledger API Router
Purchase history, headline stats and spend breakdowns

Rows are normalized when read: a matching user rule wins, then the cached
simplified name, then the raw name as extracted.
"""
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from apps.api.dependencies import get_session
from packages.common.schemas.ticket import DashboardStats, HistoryTicket, LensEntry
from packages.common.session import SessionContext
from packages.domain.insights.ledger import (
    Lens,
    dashboard_stats,
    filter_by_date,
    lens_breakdown,
    normalize_rows,
)

logger = structlog.get_logger()
router = APIRouter()


async def _normalized_rows(
    session: SessionContext,
    start: Optional[str],
    end: Optional[str],
) -> List[List[Any]]:
    rows = filter_by_date(await session.ledger.fetch_line_items(), start, end)
    rules = await session.rules.get_rules()
    mappings = await session.mapping_cache.get_cache()
    return normalize_rows(rows, rules, mappings)


@router.get("/history", response_model=List[HistoryTicket])
async def get_history(
    start: Optional[str] = Query(None, description="First date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Last date (YYYY-MM-DD)"),
    session: SessionContext = Depends(get_session),
) -> List[HistoryTicket]:
    """One entry per ticket, newest first"""
    return await session.ledger.fetch_history(start, end)


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    start: Optional[str] = Query(None, description="First date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Last date (YYYY-MM-DD)"),
    session: SessionContext = Depends(get_session),
) -> DashboardStats:
    stats = dashboard_stats(await _normalized_rows(session, start, end))
    logger.info("ledger_stats_computed",
                tickets=stats.ticket_count,
                total_spent=stats.total_spent)
    return stats


@router.get("/lens/{lens}", response_model=List[LensEntry])
async def get_lens(
    lens: Lens,
    start: Optional[str] = Query(None, description="First date (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Last date (YYYY-MM-DD)"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Top N entries"),
    session: SessionContext = Depends(get_session),
) -> List[LensEntry]:
    """Spend per product, category or store, largest first"""
    entries = lens_breakdown(await _normalized_rows(session, start, end), lens)
    return entries[:limit] if limit else entries
