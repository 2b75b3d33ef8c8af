"""
Insights Module - read-side views over the ledger

History per ticket, headline stats, and spend per product/category/store
after consumption-time normalization (rules first, then cached names).
"""
from packages.domain.insights.ledger import (
    Lens,
    build_history,
    dashboard_stats,
    filter_by_date,
    lens_breakdown,
    normalize_rows,
    safe_num,
)

__all__ = [
    "Lens",
    "build_history",
    "dashboard_stats",
    "filter_by_date",
    "lens_breakdown",
    "normalize_rows",
    "safe_num",
]
